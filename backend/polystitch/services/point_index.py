"""
Spatial hash from quantised vertex keys to owning path handles.

The index answers one question in O(1) average time: which live path
currently contains a point with this key?  Values are integer handles
issued by :class:`~polystitch.services.assembler.PathStore`; the index
never holds a path object and never mutates one.

Entries are only ever inserted or overwritten.  When one path absorbs
another, the assembler rebinds every transferred key to the surviving
handle, so no entry is left pointing at a retired handle and nothing
needs to be removed until the whole index is cleared at teardown.
Absence of a key is the normal "new vertex" signal and is not an
error.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .quantize import QuantizedKey


class SpatialPointIndex:
    """Mapping ``QuantizedKey -> path handle``."""

    def __init__(self) -> None:
        self._owners: Dict[QuantizedKey, int] = {}

    def __len__(self) -> int:
        return len(self._owners)

    def __contains__(self, key: object) -> bool:
        return key in self._owners

    def lookup(self, key: QuantizedKey) -> Optional[int]:
        """Return the handle owning ``key`` or ``None`` for a new vertex."""
        return self._owners.get(key)

    def bind(self, key: QuantizedKey, handle: int) -> None:
        """Insert or overwrite the owner of ``key``."""
        self._owners[key] = handle

    def rebind(self, keys: Iterable[QuantizedKey], handle: int) -> int:
        """Bind every key in ``keys`` to ``handle``.

        Returns:
            The number of keys written.
        """
        count = 0
        for key in keys:
            self._owners[key] = handle
            count += 1
        return count

    def clear(self) -> None:
        self._owners.clear()
