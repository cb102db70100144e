# -*- coding: utf-8 -*-
"""
exceptions.py — Error Types for the Segmentation Core
======================================================

Malformed inputs fail fast with :class:`InvalidInputError` before any
processing begins.  Numerical edge cases (uniform images, empty clusters,
zero total variance) are handled inside each algorithm and never surface
as exceptions.
"""


class MedsegError(Exception):
    """Base class for all errors raised by ``medseg``."""


class InvalidInputError(MedsegError, ValueError):
    """A buffer, dimension or parameter violates the algorithm contract."""
