"""
Incremental assembly of line segments into maximal polylines.

Segments arrive one at a time in any order.  Each call to
:meth:`PathAssembler.add_line` looks up both endpoints in a
:class:`~polystitch.services.point_index.SpatialPointIndex` keyed by
quantised coordinates and then does exactly one of the following:

* neither endpoint is known: start a new two‑point path;
* one endpoint is the front or back of a path: grow that path by the
  other endpoint;
* the endpoints belong to two different paths: orient both, splice the
  second onto the back of the first, rebind every transferred key and
  retire the second path;
* both endpoints already belong to the same path: nothing changes.

Paths live in a :class:`PathStore` arena and are addressed by integer
handles.  The index stores handles, so retiring a path can never leave
a dangling reference behind, and deduplicating paths for enumeration
or teardown is a plain handle comparison.

Endpoints that land on an interior point of an existing path would
create a vertex of degree three.  Such segments are rejected with
:class:`BranchingVertexError` before anything is mutated.

The structure is single‑writer.  Callers that ingest from several
threads must serialise calls (see
:mod:`polystitch.services.session_store`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from .. import config
from .path import Path
from .point_index import SpatialPointIndex
from .quantize import Point, QuantizedKey, Quantizer

logger = logging.getLogger(__name__)

# Outcome labels for a single ingested segment.
OUTCOME_CREATED = "created"
OUTCOME_EXTENDED = "extended"
OUTCOME_MERGED = "merged"
OUTCOME_IGNORED = "ignored"

PointLike = Union[Point, Sequence[float]]


class UnknownPathError(KeyError):
    """Raised when a handle does not name a live path."""


class BranchingVertexError(ValueError):
    """Raised when a segment endpoint hits the interior of a path.

    Attributes:
        point: The offending endpoint.
        handle: Handle of the path whose interior it touches.
    """

    def __init__(self, point: Point, handle: int) -> None:
        super().__init__(
            f"point {point.as_tuple()} is interior to path {handle}; "
            "vertices of degree > 2 are not supported"
        )
        self.point = point
        self.handle = handle


class PathStore:
    """Arena owning every live :class:`Path`.

    Handles are issued from a monotonically increasing counter and are
    never reused, so a stale handle always fails loudly instead of
    resolving to an unrelated path.
    """

    def __init__(self) -> None:
        self._paths: Dict[int, Path] = {}
        self._next_handle = 0

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, handle: object) -> bool:
        return handle in self._paths

    def create(self, points: Iterable[Point]) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._paths[handle] = Path(points)
        return handle

    def get(self, handle: int) -> Path:
        try:
            return self._paths[handle]
        except KeyError:
            raise UnknownPathError(handle) from None

    def retire(self, handle: int) -> None:
        """Release a path.  Each handle may be retired exactly once."""
        if self._paths.pop(handle, None) is None:
            raise UnknownPathError(handle)

    def items(self) -> Iterator[Tuple[int, Path]]:
        return iter(list(self._paths.items()))

    def clear(self) -> int:
        """Release every live path and return how many were released."""
        released = len(self._paths)
        self._paths.clear()
        return released


@dataclass
class IngestReport:
    """Summary of a batch passed to :meth:`PathAssembler.add_lines`."""

    accepted: int = 0
    ignored: int = 0
    rejected: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class AssemblyStats:
    """Counters describing everything an assembler has ingested."""

    segments: int
    created: int
    extended: int
    merged: int
    ignored: int
    rejected: int
    paths: int
    vertices: int


def _as_point(value: PointLike) -> Point:
    if isinstance(value, Point):
        return value
    x, y, z = value
    return Point(float(x), float(y), float(z))


class PathAssembler:
    """Stitch an unordered stream of segments into maximal polylines.

    Args:
        scale: Quantisation scale shared by every key this instance
            computes.  Defaults to :data:`polystitch.config.DEFAULT_SCALE`.
            It is fixed for the lifetime of the assembler.
    """

    def __init__(self, scale: Optional[float] = None) -> None:
        self._quantizer = Quantizer(config.DEFAULT_SCALE if scale is None else scale)
        self._index = SpatialPointIndex()
        self._store = PathStore()
        self._counts: Dict[str, int] = {
            OUTCOME_CREATED: 0,
            OUTCOME_EXTENDED: 0,
            OUTCOME_MERGED: 0,
            OUTCOME_IGNORED: 0,
        }
        self._rejected = 0

    @property
    def scale(self) -> float:
        return self._quantizer.scale

    @property
    def quantizer(self) -> Quantizer:
        return self._quantizer

    @property
    def path_count(self) -> int:
        return len(self._store)

    @property
    def vertex_count(self) -> int:
        return len(self._index)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def add_line(self, p1: PointLike, p2: PointLike) -> None:
        """Ingest one segment.

        Raises:
            BranchingVertexError: If an endpoint matches an interior
                point of an existing path.  The assembler is unchanged.
        """
        a = _as_point(p1)
        b = _as_point(p2)
        q = self._quantizer
        self._ingest(a, b, q.key(a), q.key(b))

    def add_lines(
        self,
        segments: Union[np.ndarray, Iterable[Tuple[PointLike, PointLike]]],
    ) -> IngestReport:
        """Ingest many segments, collecting rejections instead of raising.

        ``segments`` is either an iterable of ``(p1, p2)`` pairs or a
        numpy array of shape ``(N, 2, 3)``.  For arrays the keys of all
        endpoints are computed in a single vectorised pass, falling back to
        :meth:`Quantizer.key` per point when they exceed the ``int64`` range.

        Returns:
            An :class:`IngestReport`; ``rejected`` lists the positions
            of segments refused because of a branching vertex.
        """
        report = IngestReport()
        q = self._quantizer
        if isinstance(segments, np.ndarray):
            arr = np.asarray(segments, dtype=np.float64)
            if arr.ndim != 3 or arr.shape[1:] != (2, 3):
                raise ValueError(f"expected an (N, 2, 3) array, got shape {arr.shape}")
            try:
                keys = q.keys(arr.reshape(-1, 3)).reshape(-1, 2, 3).tolist()
            except OverflowError:
                keys = [[q.key(Point(*row)) for row in seg] for seg in arr.tolist()]
            pairs = (
                (
                    Point(*(float(c) for c in arr[i, 0])),
                    Point(*(float(c) for c in arr[i, 1])),
                    tuple(keys[i][0]),
                    tuple(keys[i][1]),
                )
                for i in range(arr.shape[0])
            )
        else:
            pairs = (
                (a, b, q.key(a), q.key(b))
                for a, b in ((_as_point(s[0]), _as_point(s[1])) for s in segments)
            )
        for position, (a, b, k1, k2) in enumerate(pairs):
            try:
                outcome = self._ingest(a, b, k1, k2)
            except BranchingVertexError as exc:
                logger.warning("Rejected segment %d: %s", position, exc)
                report.rejected.append(position)
                continue
            if outcome == OUTCOME_IGNORED:
                report.ignored += 1
            else:
                report.accepted += 1
        return report

    def _ingest(self, p1: Point, p2: Point, k1: QuantizedKey, k2: QuantizedKey) -> str:
        owner1 = self._index.lookup(k1)
        owner2 = self._index.lookup(k2)

        if owner1 is None and owner2 is None:
            handle = self._store.create((p1, p2))
            self._index.bind(k1, handle)
            self._index.bind(k2, handle)
            outcome = OUTCOME_CREATED
        elif owner2 is None:
            self._attach(owner1, k1, p1, p2, k2)
            outcome = OUTCOME_EXTENDED
        elif owner1 is None:
            self._attach(owner2, k2, p2, p1, k1)
            outcome = OUTCOME_EXTENDED
        elif owner1 == owner2:
            self._note_same_path(owner1, k1, k2)
            outcome = OUTCOME_IGNORED
        else:
            self._merge(owner1, owner2, p1, p2, k1, k2)
            outcome = OUTCOME_MERGED

        self._counts[outcome] += 1
        if config.ASSEMBLY_DEBUG:
            logger.debug(
                "add_line %s -> %s: %s (paths=%d vertices=%d)",
                p1.as_tuple(),
                p2.as_tuple(),
                outcome,
                len(self._store),
                len(self._index),
            )
        return outcome

    def _attach(self, handle: int, anchor_key: QuantizedKey, anchor: Point,
                point: Point, key: QuantizedKey) -> None:
        path = self._store.get(handle)
        q = self._quantizer
        if q.key(path.front()) == anchor_key:
            path.prepend(point)
        elif q.key(path.back()) == anchor_key:
            path.append(point)
        else:
            self._rejected += 1
            raise BranchingVertexError(anchor, handle)
        self._index.bind(key, handle)

    def _merge(self, owner1: int, owner2: int, p1: Point, p2: Point,
               k1: QuantizedKey, k2: QuantizedKey) -> None:
        path1 = self._store.get(owner1)
        path2 = self._store.get(owner2)
        q = self._quantizer

        # Both orientations are decided before either path is touched so
        # a rejection leaves the assembler unchanged.
        if q.key(path1.front()) == k1:
            reverse1 = True
        elif q.key(path1.back()) == k1:
            reverse1 = False
        else:
            self._rejected += 1
            raise BranchingVertexError(p1, owner1)
        if q.key(path2.front()) == k2:
            reverse2 = False
        elif q.key(path2.back()) == k2:
            reverse2 = True
        else:
            self._rejected += 1
            raise BranchingVertexError(p2, owner2)

        if reverse1:
            path1.reverse()
        if reverse2:
            path2.reverse()
        moved = path2.points()
        path1.absorb(path2)
        self._index.rebind((q.key(p) for p in moved), owner1)
        self._store.retire(owner2)
        if config.ASSEMBLY_DEBUG:
            logger.debug("Merged path %d into %d (%d points moved)", owner2, owner1, len(moved))

    def _note_same_path(self, handle: int, k1: QuantizedKey, k2: QuantizedKey) -> None:
        # Closing a loop is not recorded on the path; it is only reported.
        if k1 == k2:
            return
        path = self._store.get(handle)
        # A two-point path has both keys at its ends; a repeated edge is no loop.
        if len(path) == 2:
            return
        ends = {self._quantizer.key(path.front()), self._quantizer.key(path.back())}
        if ends == {k1, k2}:
            logger.info("Segment closes path %d into a loop; ignored", handle)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def owner_of(self, point: PointLike) -> Optional[int]:
        """Handle of the live path containing ``point``'s key, if any."""
        return self._index.lookup(self._quantizer.key(_as_point(point)))

    def path(self, handle: int) -> List[Point]:
        """Points of one live path from front to back."""
        return self._store.get(handle).points()

    def enumerate_paths(self) -> List[List[Point]]:
        """Snapshot every live path exactly once.

        The order of the paths is unspecified; the order of points
        within a path is its current front‑to‑back order.
        """
        return [path.points() for _, path in self._store.items()]

    def stats(self) -> AssemblyStats:
        c = self._counts
        return AssemblyStats(
            segments=sum(c.values()) + self._rejected,
            created=c[OUTCOME_CREATED],
            extended=c[OUTCOME_EXTENDED],
            merged=c[OUTCOME_MERGED],
            ignored=c[OUTCOME_IGNORED],
            rejected=self._rejected,
            paths=len(self._store),
            vertices=len(self._index),
        )

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> int:
        """Release every live path exactly once and empty the index.

        The assembler may be reused afterwards; counters are kept.

        Returns:
            Number of paths released.
        """
        released = self._store.clear()
        self._index.clear()
        logger.debug("Released %d paths", released)
        return released
