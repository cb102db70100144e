# -*- coding: utf-8 -*-
"""
utils.py — Shared Utility Functions
=====================================
"""

import functools
import logging
import operator
import os
import time
from typing import List, Optional, Tuple, Union

import numpy as np

from .exceptions import InvalidInputError

logger = logging.getLogger(__name__)

# 8-connected neighbourhood offsets (dx, dy).
NEIGHBOUR_OFFSETS: Tuple[Tuple[int, int], ...] = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1), (0, 1),
    (1, -1), (1, 0), (1, 1),
)

RngLike = Union[None, int, np.random.Generator]


# ──────────────────────────────────────────────────────────────────────────────
# Buffer validation
# ──────────────────────────────────────────────────────────────────────────────

def check_dimensions(width: int, height: int) -> None:
    """Raise :class:`InvalidInputError` unless both dimensions are >= 1."""
    if int(width) != width or int(height) != height:
        raise InvalidInputError(
            f"Image dimensions must be integers, got {width}x{height}")
    if width < 1 or height < 1:
        raise InvalidInputError(
            f"Image dimensions must be positive, got {width}x{height}")


def as_grayscale_buffer(pixels, width: int, height: int) -> np.ndarray:
    """Validate a grayscale buffer and return it as a flat uint8 array.

    Parameters
    ----------
    pixels : bytes, sequence of int, or np.ndarray
        Row-major intensities in 0–255 (``index = y * width + x``).  A 2-D
        array of shape ``(height, width)`` is flattened row-major.
    width, height : int
        Image dimensions.

    Returns
    -------
    np.ndarray
        1-D array of length ``width * height``, dtype uint8.  The input is
        never modified; a new array is returned when conversion is needed.

    Raises
    ------
    InvalidInputError
        If the length does not equal ``width * height`` or any value lies
        outside 0–255.
    """
    check_dimensions(width, height)
    arr = _to_array(pixels)

    if arr.ndim == 2:
        if arr.shape != (height, width):
            raise InvalidInputError(
                f"2-D buffer has shape {arr.shape}, expected "
                f"({height}, {width})")
    elif arr.ndim != 1:
        raise InvalidInputError(
            f"Buffer must be 1-D or 2-D, got {arr.ndim} dimensions")

    if arr.size != width * height:
        raise InvalidInputError(
            f"Buffer length {arr.size} does not match "
            f"{width}x{height} = {width * height}")

    return as_intensities(arr)


def _to_array(pixels) -> np.ndarray:
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        return np.frombuffer(pixels, dtype=np.uint8)
    return np.asarray(pixels)


def as_intensities(pixels) -> np.ndarray:
    """Return *pixels* as a flat uint8 array after checking the 0–255 range.

    Unlike :func:`as_grayscale_buffer` no image shape is enforced; this is
    enough for histogram-only computations.
    """
    arr = _to_array(pixels).reshape(-1)

    if arr.dtype != np.uint8:
        if not (np.issubdtype(arr.dtype, np.integer)
                or np.issubdtype(arr.dtype, np.floating)
                or arr.dtype == np.bool_):
            raise InvalidInputError(
                f"Buffer must hold numeric intensities, got {arr.dtype}")
        if np.issubdtype(arr.dtype, np.floating):
            if not np.all(np.isfinite(arr)):
                raise InvalidInputError("Buffer contains NaN or infinite values")
            if np.any(arr != np.floor(arr)):
                raise InvalidInputError(
                    "Buffer values must be whole intensities")
        if arr.size and (arr.min() < 0 or arr.max() > 255):
            raise InvalidInputError(
                "Buffer values must lie in 0-255 "
                f"(found {arr.min()}..{arr.max()})")
        arr = arr.astype(np.uint8)

    return arr


def check_count(value, name: str, minimum: int = 1) -> int:
    """Return *value* as an int, rejecting non-integers and values < minimum."""
    try:
        count = operator.index(value)
    except TypeError:
        raise InvalidInputError(
            f"{name} must be an integer, got {value!r}") from None
    if count < minimum:
        raise InvalidInputError(f"{name} must be >= {minimum}, got {count}")
    return count


def check_point(point: Tuple[int, int], width: int, height: int) -> Tuple[int, int]:
    """Return *point* as an ``(x, y)`` int tuple if it lies inside the image."""
    try:
        x, y = point
    except (TypeError, ValueError):
        raise InvalidInputError(f"Point must be an (x, y) pair, got {point!r}")
    if not (0 <= x < width and 0 <= y < height):
        raise InvalidInputError(
            f"Point ({x}, {y}) is outside image bounds {width}x{height}")
    return int(x), int(y)


# ──────────────────────────────────────────────────────────────────────────────
# Randomness
# ──────────────────────────────────────────────────────────────────────────────

def make_rng(rng: RngLike = None, default_seed: Optional[int] = None
             ) -> np.random.Generator:
    """Build a generator owned by a single call.

    Parameters
    ----------
    rng : None, int or np.random.Generator
        An existing generator is used as-is; an int seeds a new one;
        ``None`` seeds a new one with *default_seed*.
    default_seed : int, optional
        Seed used when *rng* is None.
    """
    if isinstance(rng, np.random.Generator):
        return rng
    if rng is None:
        return np.random.default_rng(default_seed)
    return np.random.default_rng(int(rng))


# ──────────────────────────────────────────────────────────────────────────────
# Files & timing
# ──────────────────────────────────────────────────────────────────────────────

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".tif", ".tiff", ".bmp"})


def list_image_files(directory: str, extensions=IMAGE_EXTENSIONS) -> List[str]:
    """Names of the image files directly inside *directory*, sorted.

    The CLI feeds these, in this order, to PCA as one batch; the first
    name is the image that gets reconstructed.  Sub-directories are
    skipped and extensions are matched case-insensitively.
    """
    with os.scandir(directory) as entries:
        names = [entry.name for entry in entries
                 if entry.is_file()
                 and os.path.splitext(entry.name)[1].lower() in extensions]
    return sorted(names)


def ensure_directory(path: str) -> None:
    """Create directory (and parents) if it does not exist."""
    if path:
        os.makedirs(path, exist_ok=True)


def timer(func):
    """Decorator that logs execution time of a function at DEBUG level."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        elapsed = time.perf_counter() - start
        logger.debug("[%s] completed in %.4fs", func.__name__, elapsed)
        return result
    return wrapper
