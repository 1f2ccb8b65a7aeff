from __future__ import annotations

from threading import Lock
from typing import Any, Iterable, Mapping

# Entries per record before entry ids spill into the next record's range.
ENTRY_ID_BLOCK = 100


# PUBLIC_INTERFACE
def entry_id(record_id: int, position: int) -> int:
    """
    Deterministic id for the entry at zero-based `position` of a record.

    (record_id - 1) * 100 + position + 1, so record 3 gets 201, 202, ...
    A record with more than 99 entries collides with the next record's ids.
    """
    return (record_id - 1) * ENTRY_ID_BLOCK + position + 1


def max_record_id(records: Iterable[Mapping[str, Any]]) -> int:
    """Highest id in the collection, or 0 when it is empty."""
    return max((int(r["id"]) for r in records), default=0)


# PUBLIC_INTERFACE
class IdAllocator:
    """
    Monotonic record-id counter.

    Seeded from the highest id already in use rather than the collection size,
    so ids freed by deletes are never handed out again.
    """

    def __init__(self, seed: int = 0) -> None:
        self._lock = Lock()
        self._last = max(seed, 0)

    @property
    def last(self) -> int:
        return self._last

    def allocate(self) -> int:
        with self._lock:
            self._last += 1
            return self._last
