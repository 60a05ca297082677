"""
Tests for point quantisation in quantize.py.

These tests check that keys are computed with half-away-from-zero
rounding, that nearby points collapse onto the same key under the
default precision, and that the vectorised numpy form agrees with the
scalar form.
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from polystitch.services.quantize import Point, Quantizer


def test_key_scales_and_rounds() -> None:
    """Keys are the rounded products of each coordinate and the scale."""
    q = Quantizer(500.0)
    assert q.key(Point(1.0, 2.0, -3.0)) == (500, 1000, -1500)
    assert q.key(Point(1.0001, 1.0, 1.0)) == (500, 500, 500)


def test_key_rounds_half_away_from_zero() -> None:
    """Exact half values round away from zero, not to even."""
    q = Quantizer(2.0)
    assert q.key(Point(0.25, -0.25, 0.75)) == (1, -1, 2)
    assert q.key(Point(1.25, -1.25, 0.0)) == (3, -3, 0)


def test_equal_uses_keys_only() -> None:
    """Points within the precision compare equal; distinct cells do not."""
    q = Quantizer(500.0)
    assert q.equal(Point(1.0, 1.0, 1.0), Point(1.0009, 0.9991, 1.0))
    assert not q.equal(Point(1.0, 1.0, 1.0), Point(1.002, 1.0, 1.0))


def test_boundary_points_may_split() -> None:
    """Points straddling a rounding boundary land in different cells."""
    q = Quantizer(2.0)
    # 0.2499 and 0.2501 are 0.0002 apart but round to 0 and 1.
    assert not q.equal(Point(0.2499, 0.0, 0.0), Point(0.2501, 0.0, 0.0))


def test_vectorised_keys_match_scalar() -> None:
    """Quantizer.keys agrees with Quantizer.key for every row."""
    q = Quantizer(2.0)
    coords = np.array(
        [
            [0.25, -0.25, 0.75],
            [1.25, -1.25, 0.0],
            [3.1, -7.9, 1e-9],
            [-0.75, 2.5, -2.5],
        ]
    )
    keys = q.keys(coords)
    assert keys.dtype == np.int64
    assert keys.shape == (4, 3)
    for row, key in zip(coords, keys):
        assert tuple(int(k) for k in key) == q.key(Point(*row))


def test_key_exact_near_half_and_above_2_52() -> None:
    """Values just below one half and odd integers past 2**52 round exactly."""
    below_half = 0.49999999999999994
    big_odd = float(2 ** 52 + 1)
    q = Quantizer(1.0)
    assert q.key(Point(below_half, -below_half, 0.5)) == (0, 0, 1)
    assert q.key(Point(big_odd, -big_odd, 0.0)) == (2 ** 52 + 1, -(2 ** 52 + 1), 0)
    coords = np.array([[below_half, -below_half, 0.5], [big_odd, -big_odd, 0.0]])
    for row, key in zip(coords, q.keys(coords)):
        assert tuple(int(k) for k in key) == q.key(Point(*row))


def test_vectorised_keys_refuse_values_outside_int64() -> None:
    """The array form raises instead of wrapping; the scalar form is unbounded."""
    q = Quantizer(500.0)
    assert q.key(Point(1e17, 0.0, 0.0))[0] == 50000000000000000000
    with pytest.raises(OverflowError):
        q.keys(np.array([[1e17, 0.0, 0.0]]))
    with pytest.raises(OverflowError):
        q.keys(np.array([[0.0, -1e17, 0.0]]))


def test_vectorised_keys_reject_bad_shape() -> None:
    q = Quantizer(500.0)
    with pytest.raises(ValueError):
        q.keys(np.zeros((4, 2)))


@pytest.mark.parametrize("scale", [0.0, -1.0])
def test_non_positive_scale_rejected(scale: float) -> None:
    with pytest.raises(ValueError):
        Quantizer(scale)


def test_point_is_immutable() -> None:
    p = Point(1.0, 2.0, 3.0)
    assert p.as_tuple() == (1.0, 2.0, 3.0)
    with pytest.raises(AttributeError):
        p.x = 5.0  # type: ignore[misc]
