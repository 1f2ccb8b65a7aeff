"""
Merging of create/update payloads into timesheet records.

Payloads are plain mappings with snake_case keys, as produced by
``model_dump(exclude_unset=True)`` on the request schemas. A key that is
absent means "not supplied"; that distinction drives the update rules.
"""
from __future__ import annotations

import copy
from datetime import date, timedelta
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .aggregation import compute_total, parse_hours
from .errors import NotFoundError
from .identity import entry_id
from .models import TimeEntryEntity, TimesheetEntity

DEFAULT_DESCRIPTION = "New Task"
DEFAULT_PROJECT = "General"

Clock = Callable[[], date]


# PUBLIC_INTERFACE
def current_week(today: date) -> Tuple[date, date]:
    """
    Monday..Sunday week containing `today`.

    Sunday belongs to the week that started six days earlier.
    """
    offset = 6 if today.isoweekday() == 7 else today.isoweekday() - 1
    start = today - timedelta(days=offset)
    return start, start + timedelta(days=6)


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _text_or_default(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def normalize_entries(
    raw_entries: Sequence[Mapping[str, Any]],
    record_id: int,
    *,
    keep_ids: bool,
) -> List[TimeEntryEntity]:
    """
    Build stored entries from payload entries.

    Entry ids come from the payload when `keep_ids` is set and the entry
    carries a truthy id; otherwise they are derived from the record id and
    the entry's position.
    """
    entries: List[TimeEntryEntity] = []
    for position, raw in enumerate(raw_entries):
        supplied_id = raw.get("id") if keep_ids else None
        entries.append(
            {
                "id": int(supplied_id) if supplied_id else entry_id(record_id, position),
                "date": _as_date(raw.get("date")),
                "hours": parse_hours(raw.get("hours")),
                "description": _text_or_default(raw.get("description"), DEFAULT_DESCRIPTION),
                "project": _text_or_default(raw.get("project"), DEFAULT_PROJECT),
            }
        )
    return entries


# PUBLIC_INTERFACE
def reconcile(
    existing: Optional[TimesheetEntity],
    payload: Mapping[str, Any],
    owner_id: int,
    *,
    allocate_id: Optional[Callable[[], int]] = None,
    clock: Clock = date.today,
) -> TimesheetEntity:
    """
    Merge `payload` into `existing` (update) or into a fresh record (create).

    Create: a new id is drawn from `allocate_id`, the week defaults to the
    current week according to `clock`, entries default to an empty list.

    Update: the record must belong to `owner_id`, otherwise NotFoundError is
    raised. Week fields change only when the payload has non-empty values.
    A supplied `entries` list replaces the old one and the total is
    recomputed; without `entries` the old entries and total are kept.

    The returned record is a new object; `existing` is not modified.
    """
    if existing is None:
        return _create(payload, owner_id, allocate_id, clock)
    return _update(existing, payload, owner_id)


def _create(
    payload: Mapping[str, Any],
    owner_id: int,
    allocate_id: Optional[Callable[[], int]],
    clock: Clock,
) -> TimesheetEntity:
    if allocate_id is None:
        raise ValueError("allocate_id is required to create a timesheet")

    record_id = allocate_id()
    default_start, default_end = current_week(clock())
    entries = normalize_entries(payload.get("entries") or [], record_id, keep_ids=False)
    return {
        "id": record_id,
        "owner_id": owner_id,
        "week_starting": _as_date(payload.get("week_starting")) or default_start,
        "week_ending": _as_date(payload.get("week_ending")) or default_end,
        "total_hours": compute_total(entries),
        "entries": entries,
    }


def _update(existing: TimesheetEntity, payload: Mapping[str, Any], owner_id: int) -> TimesheetEntity:
    if existing["owner_id"] != owner_id:
        raise NotFoundError()

    updated: TimesheetEntity = copy.deepcopy(existing)
    updated["week_starting"] = _as_date(payload.get("week_starting")) or existing["week_starting"]
    updated["week_ending"] = _as_date(payload.get("week_ending")) or existing["week_ending"]

    raw_entries = payload.get("entries")
    if raw_entries is not None:
        entries = normalize_entries(raw_entries, existing["id"], keep_ids=True)
        updated["entries"] = entries
        updated["total_hours"] = compute_total(entries)
    return updated
