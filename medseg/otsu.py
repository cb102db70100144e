# -*- coding: utf-8 -*-
"""
otsu.py — Global Otsu Thresholding
===================================

Computes the intensity that maximises the between-class variance of the
two pixel populations it separates, and binarises a buffer at that value.

The sweep walks candidate splits ``t = 0..255`` where the background class
holds intensities ``<= t``.  The reported threshold is the first foreground
intensity ``t + 1``, so the binarisation rule

    pixel >= threshold  ->  255   (foreground)
    pixel <  threshold  ->  0     (background)

reproduces exactly the partition chosen by the sweep.
"""

import logging
from dataclasses import dataclass

import numpy as np

from .utils import as_grayscale_buffer, as_intensities, timer

logger = logging.getLogger(__name__)

N_LEVELS = 256


@dataclass(frozen=True)
class OtsuResult:
    threshold: int
    mask: np.ndarray


def compute_otsu_threshold(pixels) -> int:
    """Return the optimal global threshold of a grayscale buffer.

    Parameters
    ----------
    pixels : bytes, sequence of int, or np.ndarray
        Intensities in 0–255.  Only the histogram matters, so no image
        dimensions are needed.

    Returns
    -------
    int
        Threshold in 0–255.  Ties between equally good splits keep the
        first (lowest) one.  A buffer with no valid split (a single
        intensity) returns 0, i.e. everything is foreground.
    """
    data = as_intensities(pixels)
    hist = np.bincount(data, minlength=N_LEVELS).astype(np.float64)

    total = hist.sum()
    levels = np.arange(N_LEVELS, dtype=np.float64)
    sum_all = float(np.dot(levels, hist))

    sum_b = 0.0
    w_b = 0.0
    var_max = 0.0
    split = None

    for t in range(N_LEVELS):
        w_b += hist[t]
        if w_b == 0:
            continue

        w_f = total - w_b
        if w_f == 0:
            break

        sum_b += t * hist[t]
        m_b = sum_b / w_b
        m_f = (sum_all - sum_b) / w_f

        var_between = w_b * w_f * (m_b - m_f) ** 2
        if var_between > var_max:
            var_max = var_between
            split = t

    threshold = 0 if split is None else split + 1
    logger.debug("Otsu threshold %s (between-class variance %.3f)",
                 threshold, var_max)
    return threshold


def apply_otsu_thresholding(pixels, width: int, height: int,
                            threshold: int) -> np.ndarray:
    """Binarise a buffer at *threshold*.

    Returns
    -------
    np.ndarray
        Flat uint8 mask with values in ``{0, 255}``.
    """
    data = as_grayscale_buffer(pixels, width, height)
    return np.where(data >= threshold, 255, 0).astype(np.uint8)


@timer
def otsu_threshold(pixels, width: int, height: int) -> OtsuResult:
    """Compute the Otsu threshold and the corresponding binary mask."""
    data = as_grayscale_buffer(pixels, width, height)
    threshold = compute_otsu_threshold(data)
    mask = apply_otsu_thresholding(data, width, height, threshold)
    return OtsuResult(threshold=threshold, mask=mask)
