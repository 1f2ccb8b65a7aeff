from __future__ import annotations

from datetime import date
from typing import List, Optional, TypedDict


# PUBLIC_INTERFACE
class TimeEntryEntity(TypedDict):
    """
    One logged-time line within a timesheet.

    Fields:
    - id: Unique within the owning timesheet
    - date: Day the time was logged for
    - hours: 0..24, or None when no hours were logged (distinct from 0)
    - description: Free text, defaults to 'New Task'
    - project: Free text, defaults to 'General'
    """

    id: int
    date: Optional[date]
    hours: Optional[float]
    description: str
    project: str


# PUBLIC_INTERFACE
class TimesheetEntity(TypedDict):
    """
    A weekly timesheet as held by the repository and written to disk.

    total_hours is derived from entries and is never set from client input.
    """

    id: int
    owner_id: int
    week_starting: date
    week_ending: date
    total_hours: float
    entries: List[TimeEntryEntity]


class UserEntity(TypedDict):
    id: int
    name: str
    email: str
    password_hash: str
    role: str
