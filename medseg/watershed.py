# -*- coding: utf-8 -*-
"""
watershed.py — Marker-Based Watershed Segmentation
===================================================

Splits the foreground of a binary mask into regions, one per basin of the
distance-to-background surface.

Stages:
    1.  **Distance transform** — two-pass chamfer approximation (axis step
        1, diagonal step √2).  Background pixels are 0; foreground pixels
        receive their distance to the nearest background pixel, so blob
        interiors hold the largest values.  Pixels outside the image count
        as background.
    2.  **Marker detection** — every pixel whose distance is at least
        ``min_distance`` and which no 8-neighbour strictly exceeds becomes
        a marker.  8-connected markers on the same distance plateau share
        one label; labels run 1..L in raster order of each plateau's first
        marker.
    3.  **Priority flooding** — fronts expand from all markers at once,
        always advancing the queued pixel with the *highest* distance
        first.  A pixel keeps the label of the first front that reaches
        it.  Fronts travel only through foreground pixels; anything never
        reached is background (label 0).
"""

import heapq
import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from . import config
from .exceptions import InvalidInputError
from .utils import NEIGHBOUR_OFFSETS, as_grayscale_buffer, timer

logger = logging.getLogger(__name__)

SQRT2 = float(np.sqrt(2.0))
UNPROCESSED = -1
BACKGROUND = 0


@dataclass(frozen=True)
class WatershedResult:
    labels: np.ndarray
    markers: List[Tuple[int, int]]
    distance_map: np.ndarray


# ──────────────────────────────────────────────────────────────────────────────
# Stage 0 — Binary mask
# ──────────────────────────────────────────────────────────────────────────────

def generate_binary_mask(pixels, width: int, height: int,
                         threshold: Optional[int] = None) -> np.ndarray:
    """Fixed-midpoint mask used when no Otsu mask is supplied.

    Foreground (255) is ``intensity > threshold``; the default threshold
    comes from the active preset (127).
    """
    threshold = config.resolve(threshold, "watershed_mask_threshold")
    data = as_grayscale_buffer(pixels, width, height)
    return np.where(data > threshold, 255, 0).astype(np.uint8)


# ──────────────────────────────────────────────────────────────────────────────
# Stage 1 — Chamfer distance transform
# ──────────────────────────────────────────────────────────────────────────────

def _sweep_row(row: np.ndarray, neighbour_row: np.ndarray) -> np.ndarray:
    """Relax one row against an already-final neighbouring row, then along
    itself from left to right.

    The in-row recurrence ``d[x] = min(d[x], d[x-1] + 1)`` has the closed
    form ``x + cummin(d - x)``, which lets the sequential scan run as a
    single ufunc accumulate.
    """
    diagonal = np.full_like(row, np.inf)
    diagonal[1:] = neighbour_row[:-1] + SQRT2
    diagonal[:-1] = np.minimum(diagonal[:-1], neighbour_row[1:] + SQRT2)

    relaxed = np.minimum(row, np.minimum(neighbour_row + 1.0, diagonal))
    offsets = np.arange(relaxed.size, dtype=np.float64)
    return offsets + np.minimum.accumulate(relaxed - offsets)


def compute_distance_transform(binary_mask, width: int,
                               height: int) -> np.ndarray:
    """Chamfer distance from every foreground pixel to the background.

    Parameters
    ----------
    binary_mask : bytes, sequence of int, or np.ndarray
        Row-major mask; any non-zero value is foreground ({0, 1} and
        {0, 255} conventions both work).
    width, height : int
        Image dimensions.

    Returns
    -------
    np.ndarray
        Flat float64 distance map; 0 on background.
    """
    mask = as_grayscale_buffer(binary_mask, width, height).reshape(height, width)

    # One-pixel background frame so border pixels see a boundary.
    grid = np.zeros((height + 2, width + 2), dtype=np.float64)
    grid[1:-1, 1:-1] = np.where(mask > 0, np.inf, 0.0)

    # Forward pass: top-left to bottom-right.
    for y in range(1, height + 1):
        grid[y] = _sweep_row(grid[y], grid[y - 1])

    # Backward pass: bottom-right to top-left (rows and columns reversed).
    for y in range(height, 0, -1):
        grid[y] = _sweep_row(grid[y][::-1], grid[y + 1][::-1])[::-1]

    return grid[1:-1, 1:-1].reshape(-1).copy()


# ──────────────────────────────────────────────────────────────────────────────
# Stage 2 — Markers
# ──────────────────────────────────────────────────────────────────────────────

def find_markers(distance_map: np.ndarray, width: int, height: int,
                 min_distance: Optional[float] = None) -> List[Tuple[int, int]]:
    """Return the ``(x, y)`` local maxima of *distance_map*.

    A pixel qualifies when its value is at least *min_distance* and none
    of its in-bounds 8-neighbours is strictly greater; equal neighbours
    are tolerated, so a flat peak yields one marker per plateau pixel.
    Markers are listed in raster order (row by row, left to right).
    """
    min_distance = config.resolve(min_distance,
                                  "watershed_min_marker_distance")
    dist = np.asarray(distance_map, dtype=np.float64)
    if dist.size != width * height:
        raise InvalidInputError(
            f"Distance map length {dist.size} does not match "
            f"{width}x{height}")
    dist = dist.reshape(height, width)

    padded = np.full((height + 2, width + 2), -np.inf)
    padded[1:-1, 1:-1] = dist
    neighbour_max = np.full_like(dist, -np.inf)
    for dx, dy in NEIGHBOUR_OFFSETS:
        shifted = padded[1 + dy:1 + dy + height, 1 + dx:1 + dx + width]
        neighbour_max = np.maximum(neighbour_max, shifted)

    is_marker = (dist >= min_distance) & (dist >= neighbour_max)
    ys, xs = np.nonzero(is_marker)
    return [(int(x), int(y)) for y, x in zip(ys, xs)]


# ──────────────────────────────────────────────────────────────────────────────
# Stage 3 — Priority flooding
# ──────────────────────────────────────────────────────────────────────────────

def _plateau_labels(dist: np.ndarray, markers: List[Tuple[int, int]],
                    width: int) -> List[int]:
    """One label per marker; 8-connected markers of equal distance share it."""
    height = dist.size // width
    position = {y * width + x: i for i, (x, y) in enumerate(markers)}
    labels = [0] * len(markers)
    next_label = 0

    for i, (x, y) in enumerate(markers):
        if labels[i]:
            continue
        next_label += 1
        labels[i] = next_label
        stack = [(x, y)]
        while stack:
            cx, cy = stack.pop()
            value = dist[cy * width + cx]
            for dx, dy in NEIGHBOUR_OFFSETS:
                nx, ny = cx + dx, cy + dy
                if not (0 <= nx < width and 0 <= ny < height):
                    continue
                j = position.get(ny * width + nx)
                if j is None or labels[j] or dist[ny * width + nx] != value:
                    continue
                labels[j] = next_label
                stack.append((nx, ny))

    return labels


def flood_from_markers(distance_map: np.ndarray,
                       markers: List[Tuple[int, int]],
                       width: int, height: int,
                       mask: Optional[np.ndarray] = None) -> np.ndarray:
    """Flood outward from *markers* in descending-distance order.

    Parameters
    ----------
    distance_map : np.ndarray
        Flat distance map; also the flooding priority.
    markers : list of (x, y)
        Seeds.  Touching markers of equal distance form one plateau and
        share a label; plateaus are numbered from 1 in list order.
    width, height : int
        Image dimensions.
    mask : np.ndarray, optional
        Pixels the fronts may enter.  Defaults to ``distance_map > 0``.

    Returns
    -------
    np.ndarray
        Flat int32 labels; 0 for pixels no front reached.
    """
    dist = np.asarray(distance_map, dtype=np.float64).reshape(-1)
    if dist.size != width * height:
        raise InvalidInputError(
            f"Distance map length {dist.size} does not match "
            f"{width}x{height}")
    floodable = dist > 0 if mask is None else np.asarray(mask).reshape(-1) > 0

    labels = np.full(dist.size, UNPROCESSED, dtype=np.int32)
    heap = []
    counter = itertools.count()  # FIFO among equal priorities

    for x, y in markers:
        if not (0 <= x < width and 0 <= y < height):
            raise InvalidInputError(
                f"Marker ({x}, {y}) is outside image bounds {width}x{height}")

    for (x, y), label in zip(markers, _plateau_labels(dist, markers, width)):
        index = y * width + x
        labels[index] = label
        heapq.heappush(heap, (-dist[index], next(counter), index, label))

    while heap:
        _, _, index, label = heapq.heappop(heap)
        y, x = divmod(index, width)

        for dx, dy in NEIGHBOUR_OFFSETS:
            nx, ny = x + dx, y + dy
            if not (0 <= nx < width and 0 <= ny < height):
                continue
            neighbour = ny * width + nx
            if labels[neighbour] != UNPROCESSED or not floodable[neighbour]:
                continue
            labels[neighbour] = label
            heapq.heappush(heap,
                           (-dist[neighbour], next(counter), neighbour, label))

    labels[labels == UNPROCESSED] = BACKGROUND
    return labels


# ──────────────────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────────────────

@timer
def watershed_segment(pixels, width: int, height: int,
                      binary_mask=None,
                      min_distance: Optional[float] = None) -> WatershedResult:
    """Run all three watershed stages and keep the intermediates.

    Parameters
    ----------
    pixels : bytes, sequence of int, or np.ndarray
        Row-major grayscale buffer, values 0–255.
    width, height : int
        Image dimensions.
    binary_mask : array-like, optional
        Precomputed foreground mask (e.g. the Otsu mask).  When omitted a
        fixed midpoint threshold is applied to *pixels*.
    min_distance : float, optional
        Minimum distance value for a marker.

    Returns
    -------
    WatershedResult
        Labels (0 = background, 1..M = regions), the marker list and the
        distance map.
    """
    data = as_grayscale_buffer(pixels, width, height)
    if binary_mask is None:
        mask = generate_binary_mask(data, width, height)
    else:
        mask = as_grayscale_buffer(binary_mask, width, height)

    distance_map = compute_distance_transform(mask, width, height)
    markers = find_markers(distance_map, width, height, min_distance)
    labels = flood_from_markers(distance_map, markers, width, height,
                                mask=mask)

    logger.debug("Watershed: %s markers, %s labelled pixels",
                 len(markers), int(np.count_nonzero(labels)))
    return WatershedResult(labels=labels, markers=markers,
                           distance_map=distance_map)


def apply_watershed(pixels, width: int, height: int,
                    binary_mask=None) -> np.ndarray:
    """Return only the label buffer of :func:`watershed_segment`."""
    return watershed_segment(pixels, width, height, binary_mask).labels
