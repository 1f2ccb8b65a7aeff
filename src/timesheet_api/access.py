from __future__ import annotations

from typing import List, Optional, Sequence

from .errors import AccessDeniedError
from .models import TimesheetEntity

DEFAULT_ELEVATED_ROLE = "admin"


# PUBLIC_INTERFACE
def list_for(records: Sequence[TimesheetEntity], owner_id: int) -> List[TimesheetEntity]:
    """Records owned by `owner_id`, in collection order."""
    return [r for r in records if r["owner_id"] == owner_id]


def index_of(records: Sequence[TimesheetEntity], owner_id: int, record_id: int) -> Optional[int]:
    """
    Position of the owner's record with `record_id`, or None.

    A record owned by someone else is reported exactly like a missing one.
    """
    for i, r in enumerate(records):
        if r["id"] == record_id and r["owner_id"] == owner_id:
            return i
    return None


# PUBLIC_INTERFACE
def get_one(records: Sequence[TimesheetEntity], owner_id: int, record_id: int) -> Optional[TimesheetEntity]:
    i = index_of(records, owner_id, record_id)
    return None if i is None else records[i]


# PUBLIC_INTERFACE
def list_all(
    records: Sequence[TimesheetEntity],
    role: str,
    elevated_role: str = DEFAULT_ELEVATED_ROLE,
) -> List[TimesheetEntity]:
    """
    Every record regardless of owner.

    Raises:
        AccessDeniedError if `role` is not the elevated role.
    """
    if role != elevated_role:
        raise AccessDeniedError()
    return list(records)
