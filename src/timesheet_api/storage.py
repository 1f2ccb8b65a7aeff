"""
Flat-file persistence for the timesheet collection.

The whole collection is one JSON array, rewritten in full on every mutation.
Neither store raises: load problems give an empty collection and a warning,
write problems come back as a failed PersistResult.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from .models import TimeEntryEntity, TimesheetEntity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PersistResult:
    """Outcome of writing the collection to its backing document."""

    ok: bool
    error: Optional[str] = None


PERSISTED = PersistResult(ok=True)


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    return date.fromisoformat(str(value)[:10])


def entry_to_document(entry: TimeEntryEntity) -> Dict[str, Any]:
    return {
        "id": entry["id"],
        "date": _iso(entry["date"]),
        "hours": entry["hours"],
        "description": entry["description"],
        "project": entry["project"],
    }


# PUBLIC_INTERFACE
def record_to_document(record: TimesheetEntity) -> Dict[str, Any]:
    """Serialize a record into the camelCase layout used on disk and on the wire."""
    return {
        "id": record["id"],
        "ownerId": record["owner_id"],
        "weekStarting": _iso(record["week_starting"]),
        "weekEnding": _iso(record["week_ending"]),
        "totalHours": record["total_hours"],
        "entries": [entry_to_document(e) for e in record["entries"]],
    }


def _entry_from_document(doc: Dict[str, Any]) -> TimeEntryEntity:
    hours = doc.get("hours")
    return {
        "id": int(doc["id"]),
        "date": _parse_date(doc.get("date")),
        "hours": None if hours is None or hours == "" else float(hours),
        "description": str(doc.get("description") or ""),
        "project": str(doc.get("project") or ""),
    }


# PUBLIC_INTERFACE
def record_from_document(doc: Dict[str, Any]) -> TimesheetEntity:
    """
    Parse one persisted record.

    Older documents name the owner `userId`; both keys are accepted.

    Raises:
        KeyError, TypeError, ValueError on malformed input.
    """
    owner = doc["ownerId"] if "ownerId" in doc else doc["userId"]
    week_starting = _parse_date(doc["weekStarting"])
    week_ending = _parse_date(doc["weekEnding"])
    if week_starting is None or week_ending is None:
        raise ValueError("weekStarting and weekEnding are required")
    return {
        "id": int(doc["id"]),
        "owner_id": int(owner),
        "week_starting": week_starting,
        "week_ending": week_ending,
        "total_hours": float(doc.get("totalHours") or 0),
        "entries": [_entry_from_document(e) for e in doc.get("entries") or []],
    }


def highest_document_id(docs: Any) -> int:
    """Highest integer id among raw documents, including ones that fail to parse."""
    highest = 0
    for doc in docs if isinstance(docs, list) else []:
        try:
            highest = max(highest, int(doc["id"]))
        except (KeyError, TypeError, ValueError):
            continue
    return highest


def records_from_documents(docs: Any, source: str) -> List[TimesheetEntity]:
    if not isinstance(docs, list):
        logger.warning("Timesheet data in %s is not a JSON array; starting empty", source)
        return []
    records: List[TimesheetEntity] = []
    for i, doc in enumerate(docs):
        try:
            records.append(record_from_document(doc))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning(
                "Skipping malformed timesheet #%d in %s: %r; it will be dropped on the next save",
                i,
                source,
                exc,
            )
    return records


# PUBLIC_INTERFACE
class RecordStore(ABC):
    """Backing store for the full timesheet collection."""

    #: Highest record id seen by the last load, malformed records included.
    max_seen_id: int = 0

    @abstractmethod
    def load(self) -> List[TimesheetEntity]:
        """Return the stored collection, or an empty list if there is none."""

    @abstractmethod
    def persist(self, records: Sequence[TimesheetEntity]) -> PersistResult:
        """Overwrite the stored collection with `records`."""


class JsonFileStore(RecordStore):
    """
    JSON document on the local filesystem.

    Writes go to a temporary sibling file that then replaces the document,
    so a crash mid-write never leaves a truncated file behind.
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def load(self) -> List[TimesheetEntity]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                docs = json.load(f)
        except FileNotFoundError:
            logger.warning("Timesheet data file %s not found; starting empty", self._path)
            return []
        except (OSError, ValueError) as exc:
            logger.warning("Could not read timesheet data from %s: %s", self._path, exc)
            return []
        self.max_seen_id = highest_document_id(docs)
        return records_from_documents(docs, self._path)

    def persist(self, records: Sequence[TimesheetEntity]) -> PersistResult:
        docs = [record_to_document(r) for r in records]
        directory = os.path.dirname(os.path.abspath(self._path))
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".timesheets-", suffix=".json", dir=directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(docs, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except (OSError, TypeError, ValueError) as exc:
            logger.error("Error saving timesheets to %s: %s", self._path, exc)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            return PersistResult(ok=False, error=str(exc))
        logger.debug("Saved %d timesheets to %s", len(docs), self._path)
        return PERSISTED


class MemoryRecordStore(RecordStore):
    """Keeps the serialized collection in memory. Used by tests and ephemeral runs."""

    def __init__(self, documents: Optional[List[Dict[str, Any]]] = None) -> None:
        self._snapshot = json.dumps(documents or [])

    def load(self) -> List[TimesheetEntity]:
        docs = json.loads(self._snapshot)
        self.max_seen_id = highest_document_id(docs)
        return records_from_documents(docs, "memory")

    def persist(self, records: Sequence[TimesheetEntity]) -> PersistResult:
        self._snapshot = json.dumps([record_to_document(r) for r in records])
        return PERSISTED
