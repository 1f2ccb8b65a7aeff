from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from threading import RLock
from typing import Any, List, Mapping, Optional

from . import access
from .errors import NotFoundError
from .identity import IdAllocator, max_record_id
from .models import TimesheetEntity
from .reconciliation import Clock, reconcile
from .settings import Settings, get_settings
from .storage import JsonFileStore, MemoryRecordStore, PersistResult, RecordStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WriteResult:
    """
    Outcome of a mutating operation.

    `record` is a snapshot of the affected timesheet (None for deletes).
    `persisted` tells whether the collection reached the backing store.
    """
    record: Optional[TimesheetEntity]
    persisted: bool
    error: Optional[str] = None


# PUBLIC_INTERFACE
class TimesheetRepository(ABC):
    """Abstract repository contract for timesheet storage backends."""

    @abstractmethod
    def list_for_owner(self, owner_id: int) -> List[TimesheetEntity]:
        """Return the owner's timesheets in collection order."""

    @abstractmethod
    def list_all(self, role: str) -> List[TimesheetEntity]:
        """Return every timesheet. Raises AccessDeniedError for non-elevated roles."""

    @abstractmethod
    def get(self, owner_id: int, record_id: int) -> TimesheetEntity:
        """Return the owner's timesheet. Raises NotFoundError if absent or foreign."""

    @abstractmethod
    def create(self, owner_id: int, payload: Mapping[str, Any]) -> WriteResult:
        """Create a timesheet for `owner_id` from a create payload."""

    @abstractmethod
    def update(self, owner_id: int, record_id: int, payload: Mapping[str, Any]) -> WriteResult:
        """Merge an update payload into the owner's timesheet. Raises NotFoundError."""

    @abstractmethod
    def delete(self, owner_id: int, record_id: int) -> WriteResult:
        """Remove the owner's timesheet. Raises NotFoundError."""


class JsonTimesheetRepository(TimesheetRepository):
    """
    In-memory collection mirrored to a RecordStore.

    The collection is loaded once at construction and the whole of it is
    written back after every mutation. FastAPI runs sync endpoints in a
    thread pool, so each find/mutate/persist sequence holds the lock.

    With `rollback_on_failure` a mutation whose write fails is undone, so
    memory never runs ahead of disk. Record ids drawn for it stay used.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Clock = date.today,
        elevated_role: str = access.DEFAULT_ELEVATED_ROLE,
        rollback_on_failure: bool = False,
    ) -> None:
        self._lock = RLock()
        self._store = store
        self._clock = clock
        self._elevated_role = elevated_role
        self._rollback_on_failure = rollback_on_failure
        self._records: List[TimesheetEntity] = store.load()
        self._ids = IdAllocator(max(max_record_id(self._records), store.max_seen_id))
        logger.info("Loaded %d timesheets (next id %d)", len(self._records), self._ids.last + 1)

    def _persist(self, before: List[TimesheetEntity]) -> PersistResult:
        """
        Write the collection. When the write fails and rollback is on, the
        collection goes back to `before` so the client can retry cleanly.
        """
        result = self._store.persist(self._records)
        if not result.ok and self._rollback_on_failure:
            self._records = before
            logger.warning("Write failed, rolled back to %d timesheets", len(before))
        return result

    def list_for_owner(self, owner_id: int) -> List[TimesheetEntity]:
        with self._lock:
            return copy.deepcopy(access.list_for(self._records, owner_id))

    def list_all(self, role: str) -> List[TimesheetEntity]:
        with self._lock:
            return copy.deepcopy(access.list_all(self._records, role, self._elevated_role))

    def get(self, owner_id: int, record_id: int) -> TimesheetEntity:
        with self._lock:
            record = access.get_one(self._records, owner_id, record_id)
            if record is None:
                raise NotFoundError()
            return copy.deepcopy(record)

    def create(self, owner_id: int, payload: Mapping[str, Any]) -> WriteResult:
        with self._lock:
            before = list(self._records)
            record = reconcile(None, payload, owner_id, allocate_id=self._ids.allocate, clock=self._clock)
            self._records.append(record)
            result = self._persist(before)
            logger.info("Created timesheet %d for user %d", record["id"], owner_id)
            return WriteResult(copy.deepcopy(record), result.ok, result.error)

    def update(self, owner_id: int, record_id: int, payload: Mapping[str, Any]) -> WriteResult:
        with self._lock:
            i = access.index_of(self._records, owner_id, record_id)
            if i is None:
                raise NotFoundError()
            before = list(self._records)
            updated = reconcile(self._records[i], payload, owner_id)
            self._records[i] = updated
            result = self._persist(before)
            logger.info("Updated timesheet %d for user %d", record_id, owner_id)
            return WriteResult(copy.deepcopy(updated), result.ok, result.error)

    def delete(self, owner_id: int, record_id: int) -> WriteResult:
        with self._lock:
            i = access.index_of(self._records, owner_id, record_id)
            if i is None:
                raise NotFoundError()
            before = list(self._records)
            del self._records[i]
            result = self._persist(before)
            logger.info("Deleted timesheet %d for user %d", record_id, owner_id)
            return WriteResult(None, result.ok, result.error)


# PUBLIC_INTERFACE
def get_repository(settings: Optional[Settings] = None, clock: Clock = date.today) -> TimesheetRepository:
    """
    Factory to build the configured repository.
    - json: collection mirrored to settings.timesheets_file
    - memory: collection kept in process memory only
    """
    settings = settings or get_settings()
    store: RecordStore
    if settings.persistence_backend == "memory":
        store = MemoryRecordStore()
    else:
        store = JsonFileStore(settings.timesheets_file)
    return JsonTimesheetRepository(
        store,
        clock=clock,
        elevated_role=settings.elevated_role,
        rollback_on_failure=settings.strict_persistence,
    )
