"""
Ordered, reversible polylines.

A :class:`Path` is the unit of ownership in the assembler: an ordered
sequence of points with a distinguished front and back that grows at
either end, can be reversed in place and can absorb another path
wholesale.  Points are held in a ``collections.deque`` so growth at
both ends is O(1).

A path is born with at least two points and only ever grows or is
emptied by being absorbed into another path, after which it is retired
by its store.  Observing an empty path through :meth:`Path.front` or
:meth:`Path.back` therefore means the merge bookkeeping is broken and
raises :class:`EmptyPathError`.
"""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List

from .quantize import Point


class EmptyPathError(RuntimeError):
    """Raised when an endpoint of a path with zero points is requested."""


class Path:
    """Ordered sequence of :class:`Point` objects."""

    __slots__ = ("_points",)

    def __init__(self, points: Iterable[Point] = ()) -> None:
        self._points: Deque[Point] = deque(points)

    def __len__(self) -> int:
        return len(self._points)

    def __repr__(self) -> str:
        return f"Path({list(self._points)!r})"

    def front(self) -> Point:
        if not self._points:
            raise EmptyPathError("front() called on an empty path")
        return self._points[0]

    def back(self) -> Point:
        if not self._points:
            raise EmptyPathError("back() called on an empty path")
        return self._points[-1]

    def append(self, point: Point) -> None:
        self._points.append(point)

    def prepend(self, point: Point) -> None:
        self._points.appendleft(point)

    def reverse(self) -> None:
        """Reverse the point order in place; front and back swap."""
        self._points.reverse()

    def absorb(self, other: "Path") -> None:
        """Move every point of ``other`` onto the back of this path.

        ``other`` is left empty.  Absorbing a path into itself is a
        programming error and raises ``ValueError``.
        """
        if other is self:
            raise ValueError("a path cannot absorb itself")
        self._points.extend(other._points)
        other._points.clear()

    def points(self) -> List[Point]:
        """Snapshot of the points from front to back."""
        return list(self._points)
