"""
In‑memory registry of assembly sessions.

A session wraps one :class:`~polystitch.services.assembler.PathAssembler`
so that a client can stream segments over several requests and read
back the assembled paths at any point in between.  The assembler is a
single‑writer structure; every session therefore carries its own lock
and all ingestion and snapshots for that session go through it.  A
separate reentrant lock guards the registry itself.

The registry is an ``OrderedDict`` with least‑recently‑used eviction.
When the number of sessions exceeds ``capacity`` the oldest session is
closed (releasing its paths) and dropped.

Usage::

    from .session_store import default_store
    session = default_store.create(scale=500.0)
    report = default_store.ingest(session.session_id, [((0, 0, 0), (1, 1, 1))])
    paths = default_store.snapshot(session.session_id)
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock, RLock
from typing import Iterable, List, Optional, Tuple

from .. import config
from .assembler import AssemblyStats, IngestReport, PathAssembler, PointLike
from .quantize import Point

logger = logging.getLogger(__name__)


class SessionNotFoundError(KeyError):
    """Raised when a session id is unknown or was evicted."""


@dataclass
class Session:
    """A named assembler together with the lock serialising its writers."""

    session_id: str
    assembler: PathAssembler
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)


class SessionStore:
    """LRU registry of :class:`Session` objects.

    Args:
        capacity: Maximum number of sessions retained.  Defaults to
            :data:`polystitch.config.MAX_SESSIONS`.
    """

    def __init__(self, capacity: Optional[int] = None) -> None:
        self.capacity = config.MAX_SESSIONS if capacity is None else capacity
        if self.capacity <= 0:
            raise ValueError("capacity must be positive")
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._lock = RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, scale: Optional[float] = None) -> Session:
        """Open a new session with its own assembler.

        Raises:
            ValueError: If ``scale`` is not positive.
        """
        session = Session(session_id=uuid.uuid4().hex, assembler=PathAssembler(scale))
        with self._lock:
            self._sessions[session.session_id] = session
            self._sessions.move_to_end(session.session_id)
            while len(self._sessions) > self.capacity:
                evicted_id, evicted = self._sessions.popitem(last=False)
                with evicted.lock:
                    evicted.assembler.close()
                logger.info("Evicted session %s (capacity %d)", evicted_id, self.capacity)
        logger.info("Created session %s scale=%s", session.session_id, session.assembler.scale)
        return session

    def get(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            self._sessions.move_to_end(session_id)
            return session

    def list(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())

    def delete(self, session_id: str) -> None:
        """Close a session and remove it from the registry."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        with session.lock:
            released = session.assembler.close()
        logger.info("Deleted session %s (%d paths released)", session_id, released)

    def ingest(
        self,
        session_id: str,
        segments: Iterable[Tuple[PointLike, PointLike]],
    ) -> IngestReport:
        session = self.get(session_id)
        with session.lock:
            return session.assembler.add_lines(segments)

    def snapshot(self, session_id: str) -> Tuple[List[List[Point]], AssemblyStats]:
        """Enumerate the session's paths and its counters atomically."""
        session = self.get(session_id)
        with session.lock:
            return session.assembler.enumerate_paths(), session.assembler.stats()

    def stats(self, session_id: str) -> AssemblyStats:
        session = self.get(session_id)
        with session.lock:
            return session.assembler.stats()

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            with session.lock:
                session.assembler.close()


# Registry used by the HTTP routes.
default_store = SessionStore()
