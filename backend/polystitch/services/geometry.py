"""
Small numeric helpers for assembled polylines.

These functions operate on plain sequences of
:class:`~polystitch.services.quantize.Point` objects and use numpy for
the arithmetic.  They are used by the HTTP layer to describe each
assembled path.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

from .quantize import Point


def points_to_array(points: Sequence[Point]) -> np.ndarray:
    """Stack points into an ``(N, 3)`` float array."""
    if not points:
        return np.zeros((0, 3), dtype=np.float64)
    return np.array([p.as_tuple() for p in points], dtype=np.float64)


def polyline_length(points: Sequence[Point]) -> float:
    """Sum of Euclidean distances between consecutive points."""
    arr = points_to_array(points)
    if arr.shape[0] < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(arr, axis=0), axis=1).sum())


def bounding_box(points: Sequence[Point]) -> Tuple[Tuple[float, float, float], Tuple[float, float, float]]:
    """Axis‑aligned bounds of ``points`` as ``(min_xyz, max_xyz)``.

    Raises:
        ValueError: If ``points`` is empty.
    """
    arr = points_to_array(points)
    if arr.shape[0] == 0:
        raise ValueError("bounding_box() requires at least one point")
    lo = arr.min(axis=0)
    hi = arr.max(axis=0)
    return (
        (float(lo[0]), float(lo[1]), float(lo[2])),
        (float(hi[0]), float(hi[1]), float(hi[2])),
    )
