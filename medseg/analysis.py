# -*- coding: utf-8 -*-
"""
analysis.py — Quality Metrics & Summaries for Segmentation Outputs
===================================================================

Functions for scoring a binary mask against a reference annotation and
for summarising label buffers produced by K-means or watershed.
"""

from typing import Dict, List

import numpy as np

from .exceptions import InvalidInputError

EPS = 1e-8


# ──────────────────────────────────────────────────────────────────────────────
# Mask Metrics
# ──────────────────────────────────────────────────────────────────────────────

def compute_mask_metrics(pred, gt) -> Dict[str, float]:
    """Score a segmentation mask against a reference annotation.

    Both buffers are read as foreground wherever they are non-zero, so an
    Otsu mask ({0, 255}) can be compared directly with a region-growing
    mask ({0, 1}) or a ground-truth PNG.

    Returns
    -------
    dict
        ``precision``, ``recall``, ``f1``, ``iou``, ``dice``,
        ``specificity`` and ``accuracy``, each rounded to 6 decimals.

    Raises
    ------
    InvalidInputError
        If the two masks hold a different number of pixels.
    """
    pred = np.asarray(pred).reshape(-1) > 0
    gt = np.asarray(gt).reshape(-1) > 0
    if pred.size != gt.size:
        raise InvalidInputError(
            f"Mask sizes differ: {pred.size} vs {gt.size}")

    tp = float(np.count_nonzero(pred & gt))
    fp = float(np.count_nonzero(pred & ~gt))
    fn = float(np.count_nonzero(~pred & gt))
    tn = float(gt.size) - tp - fp - fn

    precision = tp / (tp + fp + EPS)
    recall = tp / (tp + fn + EPS)
    f1 = 2 * precision * recall / (precision + recall + EPS)
    scores = {
        "precision": precision,
        "recall": recall,
        "f1": f1,
        "iou": tp / (tp + fp + fn + EPS),
        "dice": f1,  # identical to F1 on binary masks
        "specificity": tn / (tn + fp + EPS),
        "accuracy": (tp + tn) / (gt.size + EPS),
    }
    return {name: round(value, 6) for name, value in scores.items()}


# ──────────────────────────────────────────────────────────────────────────────
# Label Summaries
# ──────────────────────────────────────────────────────────────────────────────

def summarize_labels(labels) -> Dict[int, int]:
    """Return ``{label: pixel_count}`` for every label present."""
    values, counts = np.unique(np.asarray(labels).reshape(-1),
                               return_counts=True)
    return {int(v): int(c) for v, c in zip(values, counts)}


def format_console_table(metrics: Dict[str, float],
                         keys: List[str] = None) -> str:
    """Format a metrics dict as a two-column console table."""
    if keys is None:
        keys = ["precision", "recall", "f1", "iou", "dice", "specificity"]

    separator = "  " + "-" * 26
    lines = [f"  {'Metric':<14}{'Value':>12}", separator]
    for key in keys:
        lines.append(f"  {key:<14}{metrics.get(key, 0):12.4f}")
    return "\n".join(lines)
