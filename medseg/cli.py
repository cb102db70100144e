#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cli.py — Command-Line Driver for the Segmentation Algorithms
=============================================================

Decodes an image from disk, runs one algorithm on its grayscale buffer and
writes the result next to it.  Decoding and encoding are handled by OpenCV
and matplotlib; the algorithms themselves only ever see flat buffers.

Usage
-----
    # Otsu binary mask, scored against a reference annotation:
    medseg otsu scan.png -o scan_otsu.png --ground-truth scan_gt.png

    # K-means with 4 clusters and a fixed seed:
    medseg kmeans scan.png -o scan_kmeans.png -k 4 --seed 7

    # Region growing from a given seed point:
    medseg region scan.png -o scan_region.png --seed-point 120 96 --tolerance 20

    # Watershed on the Otsu mask:
    medseg watershed scan.png -o scan_ws.png --otsu

    # PCA reconstruction of the first image of a directory:
    medseg pca slices/ -o first_slice_pca.png --components 3
"""

import argparse
import logging
import os
import sys
import time

import cv2
import numpy as np
import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for file output
import matplotlib.pyplot as plt

from . import config
from .analysis import compute_mask_metrics, format_console_table, summarize_labels
from .exceptions import MedsegError
from .kmeans import kmeans_cluster
from .otsu import otsu_threshold
from .pca import pca_reduce
from .region_growing import apply_region_growing
from .utils import ensure_directory, list_image_files
from .watershed import watershed_segment

logger = logging.getLogger("medseg")


# ──────────────────────────────────────────────────────────────────────────────
# Image I/O helpers
# ──────────────────────────────────────────────────────────────────────────────

def load_grayscale(path: str) -> np.ndarray:
    """Read *path* as a single-channel uint8 image (H, W)."""
    img = cv2.imread(path, cv2.IMREAD_GRAYSCALE)
    if img is None:
        raise FileNotFoundError(f"Could not read image: {path}")
    return img


def save_mask(path: str, buffer: np.ndarray, width: int, height: int,
              binary: bool = False) -> None:
    """Write a flat mask or reconstruction as an 8-bit grayscale PNG.

    With *binary* set, any non-zero value is written as 255.
    """
    image = np.asarray(buffer, dtype=np.uint8).reshape(height, width)
    if binary:
        image = np.where(image > 0, 255, 0).astype(np.uint8)
    ensure_directory(os.path.dirname(path))
    cv2.imwrite(path, image)


def save_labels(path: str, labels: np.ndarray, width: int, height: int) -> None:
    """Write a flat label buffer through a stock matplotlib colormap."""
    image = np.asarray(labels).reshape(height, width)
    ensure_directory(os.path.dirname(path))
    plt.imsave(path, image, cmap="nipy_spectral",
               vmin=0, vmax=max(int(image.max()), 1))


# ──────────────────────────────────────────────────────────────────────────────
# Sub-commands
# ──────────────────────────────────────────────────────────────────────────────

def _report_metrics(mask: np.ndarray, gt_path: str) -> None:
    gt = load_grayscale(gt_path)
    metrics = compute_mask_metrics(mask, gt)
    print(format_console_table(metrics))


def run_otsu(args) -> None:
    img = load_grayscale(args.image)
    height, width = img.shape
    result = otsu_threshold(img, width, height)
    print(f"  Otsu threshold: {result.threshold}")
    save_mask(args.output, result.mask, width, height)
    if args.ground_truth:
        _report_metrics(result.mask, args.ground_truth)


def run_kmeans(args) -> None:
    img = load_grayscale(args.image)
    height, width = img.shape
    result = kmeans_cluster(img, width, height, k=args.k,
                            max_iterations=args.max_iterations, rng=args.seed)
    status = "converged" if result.converged else "NOT converged"
    print(f"  K-means {status} after {result.iterations} iterations")
    print("  Centroids: " + ", ".join(f"{c:.1f}" for c in result.centroids))
    save_labels(args.output, result.labels, width, height)


def run_region(args) -> None:
    img = load_grayscale(args.image)
    height, width = img.shape
    seed = tuple(args.seed_point) if args.seed_point else None
    mask = apply_region_growing(img, width, height, seed=seed,
                                tolerance=args.tolerance)
    print(f"  Region size: {int(mask.sum())} pixels")
    save_mask(args.output, mask, width, height, binary=True)
    if args.ground_truth:
        _report_metrics(mask, args.ground_truth)


def run_watershed(args) -> None:
    img = load_grayscale(args.image)
    height, width = img.shape
    binary = otsu_threshold(img, width, height).mask if args.otsu else None
    result = watershed_segment(img, width, height, binary_mask=binary)
    counts = summarize_labels(result.labels)
    print(f"  Markers: {len(result.markers)}  |  "
          f"regions: {len([k for k in counts if k > 0])}")
    save_labels(args.output, result.labels, width, height)


def run_pca(args) -> None:
    files = list_image_files(args.image_dir)
    if not files:
        raise FileNotFoundError(f"No images found in {args.image_dir}")
    images = [load_grayscale(os.path.join(args.image_dir, f)) for f in files]
    height, width = images[0].shape
    result = pca_reduce(images, width, height, n_components=args.components)

    print(f"  PCA over {len(images)} images  |  "
          f"{result.n_components} components used")
    if result.illustrative:
        print("  [WARN] Single image: variance ratios are illustrative only")
    top = result.explained_variance_ratio[:5]
    print("  Explained variance: " + ", ".join(f"{r:.3f}" for r in top))
    save_mask(args.output, result.reconstructed, width, height)


# ──────────────────────────────────────────────────────────────────────────────
# Entry point
# ──────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="medseg",
        description="Grayscale medical image segmentation algorithms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--preset", choices=sorted(config.PRESETS), default="default",
        help="Parameter preset (default: default)")
    parser.add_argument(
        "--verbose", action="store_true", help="Enable DEBUG logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("otsu", help="Otsu binary threshold")
    p.add_argument("image")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--ground-truth", help="Reference mask to score against")
    p.set_defaults(func=run_otsu)

    p = sub.add_parser("kmeans", help="K-means intensity clustering")
    p.add_argument("image")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("-k", type=int, default=None, help="Number of clusters")
    p.add_argument("--max-iterations", type=int, default=None)
    p.add_argument("--seed", type=int, default=None,
                   help="Seed for centroid initialisation")
    p.set_defaults(func=run_kmeans)

    p = sub.add_parser("region", help="Seeded region growing")
    p.add_argument("image")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--seed-point", type=int, nargs=2, metavar=("X", "Y"),
                   help="Seed pixel (default: image centre)")
    p.add_argument("--tolerance", type=int, default=None)
    p.add_argument("--ground-truth", help="Reference mask to score against")
    p.set_defaults(func=run_region)

    p = sub.add_parser("watershed", help="Distance-transform watershed")
    p.add_argument("image")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--otsu", action="store_true",
                   help="Use the Otsu mask instead of the midpoint threshold")
    p.set_defaults(func=run_watershed)

    p = sub.add_parser("pca", help="PCA reconstruction across a directory")
    p.add_argument("image_dir")
    p.add_argument("-o", "--output", required=True)
    p.add_argument("--components", type=int, default=None)
    p.set_defaults(func=run_pca)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config.set_config(args.preset)

    print(f"\n{'='*60}")
    print(f"  MEDSEG  |  {args.command}  |  preset: {args.preset}")
    print(f"{'='*60}")

    t0 = time.perf_counter()
    try:
        args.func(args)
    except (MedsegError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1

    print(f"\n  ✓ Done in {time.perf_counter() - t0:.2f}s  →  {args.output}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
