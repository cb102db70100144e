# -*- coding: utf-8 -*-
"""
kmeans.py — K-Means Intensity Clustering
=========================================

Partitions the pixel intensities of a grayscale buffer into *k* clusters.

Each call owns its random generator: pass an ``int`` seed for reproducible
results, an existing ``numpy.random.Generator`` to control draw order
yourself, or ``None`` to seed from the active configuration preset.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from . import config
from .utils import RngLike, as_grayscale_buffer, check_count, make_rng, timer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KMeansResult:
    """Outcome of one clustering call.

    ``converged`` is False when ``max_iterations`` passes ran without the
    labelling becoming stable; ``labels`` then holds the last assignment.
    """

    labels: np.ndarray
    centroids: np.ndarray
    iterations: int
    converged: bool


def initialize_centroids(data: np.ndarray, k: int,
                         rng: np.random.Generator) -> np.ndarray:
    """Pick *k* initial centroids from the distinct intensities of *data*.

    Distinct values are drawn uniformly without replacement; when fewer
    than *k* distinct values exist the remaining centroids are sampled
    with replacement from the same set.
    """
    distinct = np.unique(data).astype(np.float64)
    n_unique = min(k, distinct.size)

    chosen = rng.choice(distinct, size=n_unique, replace=False)
    if n_unique < k:
        extra = rng.choice(distinct, size=k - n_unique, replace=True)
        chosen = np.concatenate([chosen, extra])
    return chosen.astype(np.float64)


def _assign(data: np.ndarray, centroids: np.ndarray) -> np.ndarray:
    """Label every pixel with its nearest centroid (ties → lowest index).

    Intensities are bytes, so the nearest centroid is resolved once per
    grey level and then looked up per pixel.
    """
    levels = np.arange(256, dtype=np.float64)
    distances = np.abs(levels[:, None] - centroids[None, :])
    lookup = np.argmin(distances, axis=1).astype(np.int32)
    return lookup[data]


def _update_centroids(data: np.ndarray, labels: np.ndarray,
                      centroids: np.ndarray) -> np.ndarray:
    """Move each centroid to the mean of its members; empty ones stay put."""
    k = centroids.size
    sums = np.bincount(labels, weights=data, minlength=k)
    counts = np.bincount(labels, minlength=k)

    updated = centroids.copy()
    occupied = counts > 0
    updated[occupied] = sums[occupied] / counts[occupied]
    return updated


@timer
def kmeans_cluster(pixels, width: int, height: int,
                   k: Optional[int] = None,
                   max_iterations: Optional[int] = None,
                   rng: RngLike = None) -> KMeansResult:
    """Cluster pixel intensities with Lloyd's algorithm.

    Parameters
    ----------
    pixels : bytes, sequence of int, or np.ndarray
        Row-major grayscale buffer, values 0–255.
    width, height : int
        Image dimensions.
    k : int, optional
        Number of clusters (>= 1).  Defaults to the active preset.
    max_iterations : int, optional
        Maximum number of assignment passes (>= 1).
    rng : None, int or np.random.Generator
        Source of randomness for centroid initialisation.

    Returns
    -------
    KMeansResult
        Per-pixel labels in ``[0, k)``, final centroids, the number of
        passes run and whether the labelling stabilised.

    Raises
    ------
    InvalidInputError
        On a malformed buffer, ``k < 1`` or ``max_iterations < 1``.
    """
    k = check_count(config.resolve(k, "kmeans_k"), "Cluster count")
    max_iterations = check_count(
        config.resolve(max_iterations, "kmeans_max_iterations"),
        "max_iterations")
    data = as_grayscale_buffer(pixels, width, height)

    generator = make_rng(rng, config.get_config()["kmeans_seed"])
    centroids = initialize_centroids(data, k, generator)
    values = data.astype(np.float64)
    labels = np.zeros(data.size, dtype=np.int32)

    converged = False
    iterations = 0
    for iterations in range(1, max_iterations + 1):
        new_labels = _assign(data, centroids)
        changed = not np.array_equal(new_labels, labels)
        labels = new_labels
        centroids = _update_centroids(values, labels, centroids)
        if not changed:
            converged = True
            break

    if converged:
        logger.debug("K-means (k=%s) converged after %s iterations",
                     k, iterations)
    else:
        logger.warning("K-means (k=%s) stopped at max_iterations=%s "
                       "without converging", k, max_iterations)

    return KMeansResult(labels=labels, centroids=centroids,
                        iterations=iterations, converged=converged)


def apply_kmeans(pixels, width: int, height: int,
                 k: Optional[int] = None,
                 max_iterations: Optional[int] = None,
                 rng: RngLike = None) -> np.ndarray:
    """Return only the per-pixel cluster labels of :func:`kmeans_cluster`."""
    return kmeans_cluster(pixels, width, height, k=k,
                          max_iterations=max_iterations, rng=rng).labels
