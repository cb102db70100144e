# -*- coding: utf-8 -*-
"""
region_growing.py — Seeded Region Growing
==========================================

Breadth-first flood fill over the 8-connected neighbourhood of a seed.
A neighbour joins the region when its intensity lies within *tolerance*
of the seed intensity; the comparison is always against the original
seed value, never a running regional mean, so a larger tolerance can only
grow the region.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from . import config
from .exceptions import InvalidInputError
from .utils import NEIGHBOUR_OFFSETS, as_grayscale_buffer, check_point, timer

logger = logging.getLogger(__name__)


def image_center(width: int, height: int) -> Tuple[int, int]:
    """Return the ``(x, y)`` centre pixel, the usual default seed."""
    return width // 2, height // 2


@timer
def apply_region_growing(pixels, width: int, height: int,
                         seed: Optional[Tuple[int, int]] = None,
                         tolerance: Optional[int] = None) -> np.ndarray:
    """Grow a region from *seed* and return its binary mask.

    Parameters
    ----------
    pixels : bytes, sequence of int, or np.ndarray
        Row-major grayscale buffer, values 0–255.
    width, height : int
        Image dimensions.
    seed : tuple of int, optional
        ``(x, y)`` start pixel; defaults to the image centre.
    tolerance : int, optional
        Maximum ``|I - I_seed|`` admitted (>= 0).  Defaults to the active
        preset.

    Returns
    -------
    np.ndarray
        Flat uint8 mask, 1 inside the region and 0 elsewhere.  The seed
        pixel is always 1.

    Raises
    ------
    InvalidInputError
        On a malformed buffer, an out-of-bounds seed or a negative
        tolerance.
    """
    tolerance = config.resolve(tolerance, "region_tolerance")
    data = as_grayscale_buffer(pixels, width, height)
    if seed is None:
        seed = image_center(width, height)
    sx, sy = check_point(seed, width, height)
    if tolerance < 0:
        raise InvalidInputError(f"Tolerance must be >= 0, got {tolerance}")

    intensities = data.astype(np.int32)
    seed_index = sy * width + sx
    seed_value = int(intensities[seed_index])

    region = np.zeros(data.size, dtype=np.uint8)
    region[seed_index] = 1

    # Every pixel is enqueued at most once, so the arena never overflows.
    queue = np.empty(data.size, dtype=np.int64)
    queue[0] = seed_index
    head, tail = 0, 1

    while head < tail:
        index = int(queue[head])
        head += 1
        y, x = divmod(index, width)

        for dx, dy in NEIGHBOUR_OFFSETS:
            nx, ny = x + dx, y + dy
            if not (0 <= nx < width and 0 <= ny < height):
                continue
            neighbour = ny * width + nx
            if region[neighbour]:
                continue
            if abs(int(intensities[neighbour]) - seed_value) <= tolerance:
                region[neighbour] = 1
                queue[tail] = neighbour
                tail += 1

    logger.debug("Region from seed (%s, %s) tolerance %s: %s pixels",
                 sx, sy, tolerance, tail)
    return region
