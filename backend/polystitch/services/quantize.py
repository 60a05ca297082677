"""
Fixed‑precision quantisation of 3D points.

Segment endpoints produced by upstream geometry code rarely agree to
the last bit even when they describe the same vertex.  This module
maps every coordinate onto an integer grid of spacing ``1 / scale``
so that nearly coincident points share a key.  A ``QuantizedKey`` is
the triple ``(round(x * scale), round(y * scale), round(z * scale))``
and two points are treated as the same vertex exactly when their keys
are equal.

Rounding is half away from zero.  Points lying on a grid boundary may
therefore land in different cells even though they are closer than
the nominal precision; this is an artefact of quantisation and is not
corrected here.

Keys computed under different scales are not comparable.  A single
``Quantizer`` is owned by each assembler and never changes scale.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

QuantizedKey = Tuple[int, int, int]

_INT64_LIMIT = 2.0 ** 63


@dataclass(frozen=True)
class Point:
    """A 3D point.  Compared through quantised keys, never directly."""

    x: float
    y: float
    z: float

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.x, self.y, self.z)


def _round_half_away(value: float) -> int:
    # value - trunc(value) is exact in binary floating point.
    whole = math.trunc(value)
    if abs(value - whole) >= 0.5:
        whole += 1 if value > 0 else -1
    return whole


class Quantizer:
    """Convert real coordinates into integer keys under a fixed scale.

    Args:
        scale: Multiplier applied to every coordinate before rounding.
            A scale of 500 treats points closer than roughly 0.002
            units per axis as identical.

    Raises:
        ValueError: If ``scale`` is not strictly positive.
    """

    def __init__(self, scale: float) -> None:
        if not scale > 0.0:
            raise ValueError("scale must be positive for quantisation")
        self.scale = float(scale)

    def __repr__(self) -> str:
        return f"Quantizer(scale={self.scale!r})"

    def key(self, point: Point) -> QuantizedKey:
        """Return the quantised key of ``point``."""
        s = self.scale
        return (
            _round_half_away(point.x * s),
            _round_half_away(point.y * s),
            _round_half_away(point.z * s),
        )

    def equal(self, a: Point, b: Point) -> bool:
        """True when ``a`` and ``b`` quantise to the same key."""
        return self.key(a) == self.key(b)

    def keys(self, coords: np.ndarray) -> np.ndarray:
        """Quantise an ``(N, 3)`` coordinate array in one pass.

        The rounding rule matches :meth:`key` so the vectorised and
        scalar forms agree on every input, including values exactly
        half way between two grid cells.

        Args:
            coords: Array of shape ``(N, 3)``.

        Returns:
            An ``int64`` array of shape ``(N, 3)``.

        Raises:
            OverflowError: If a scaled coordinate falls outside the
                ``int64`` range.  :meth:`key` has no such limit.
        """
        arr = np.asarray(coords, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 3:
            raise ValueError(f"expected an (N, 3) array, got shape {arr.shape}")
        scaled = arr * self.scale
        whole = np.trunc(scaled)
        rounded = whole + np.where(np.abs(scaled - whole) >= 0.5, np.sign(scaled), 0.0)
        if np.any((rounded >= _INT64_LIMIT) | (rounded < -_INT64_LIMIT)):
            raise OverflowError("scaled coordinates exceed the int64 key range")
        return rounded.astype(np.int64)
