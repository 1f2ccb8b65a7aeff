from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status

from ..auth import Identity, get_current_identity
from ..errors import PersistenceError
from ..repositories import TimesheetRepository, WriteResult
from ..schemas import (
    MessageEnvelope,
    TimesheetCreate,
    TimesheetEnvelope,
    TimesheetListEnvelope,
    TimesheetOut,
    TimesheetUpdate,
)
from ..utils import list_envelope, record_envelope

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/timesheets",
    tags=["timesheets"],
)


def _get_repo(request: Request) -> TimesheetRepository:
    """
    Dependency returning the repository owned by the running application.
    """
    return request.app.state.repository


def _check_persisted(request: Request, result: WriteResult) -> None:
    """
    Decide what a failed write means for the response.

    Lenient (default): log and answer as if the write succeeded.
    Strict: answer 503 so the client can retry.
    """
    if result.persisted:
        return
    if request.app.state.settings.strict_persistence:
        raise PersistenceError()
    logger.warning("Timesheet change kept in memory only, write failed: %s", result.error)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TimesheetListEnvelope,
    summary="List own timesheets",
    description="List the caller's timesheets in creation order.",
)
def list_timesheets(
    identity: Identity = Depends(get_current_identity),
    repo: TimesheetRepository = Depends(_get_repo),
) -> TimesheetListEnvelope:
    items = repo.list_for_owner(identity.user_id)
    return TimesheetListEnvelope(**list_envelope([TimesheetOut(**it) for it in items]))


# PUBLIC_INTERFACE
@router.get(
    "/all",
    response_model=TimesheetListEnvelope,
    summary="List all timesheets",
    description="List every user's timesheets. Requires the elevated (admin) role.",
    responses={403: {"description": "Caller is not an admin"}},
)
def list_all_timesheets(
    identity: Identity = Depends(get_current_identity),
    repo: TimesheetRepository = Depends(_get_repo),
) -> TimesheetListEnvelope:
    items = repo.list_all(identity.role)
    return TimesheetListEnvelope(**list_envelope([TimesheetOut(**it) for it in items]))


# PUBLIC_INTERFACE
@router.get(
    "/{timesheet_id}",
    response_model=TimesheetEnvelope,
    summary="Get timesheet",
    description="Get one of the caller's timesheets by ID.",
    responses={404: {"description": "Timesheet not found"}},
)
def get_timesheet(
    timesheet_id: int,
    identity: Identity = Depends(get_current_identity),
    repo: TimesheetRepository = Depends(_get_repo),
) -> TimesheetEnvelope:
    """
    Retrieve a timesheet. Someone else's timesheet is reported as not found.
    """
    item = repo.get(identity.user_id, timesheet_id)
    return TimesheetEnvelope(**record_envelope(TimesheetOut(**item)))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TimesheetEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create timesheet",
    description=(
        "Create a timesheet for the caller. Week boundaries default to the current "
        "Monday..Sunday week; totalHours is computed from the entries."
    ),
    responses={
        201: {"description": "Timesheet created successfully"},
        400: {"description": "Validation error"},
    },
)
def create_timesheet(
    payload: TimesheetCreate,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    repo: TimesheetRepository = Depends(_get_repo),
) -> TimesheetEnvelope:
    result = repo.create(identity.user_id, payload.model_dump(exclude_unset=True))
    _check_persisted(request, result)
    return TimesheetEnvelope(
        **record_envelope(TimesheetOut(**result.record), "Timesheet created successfully")  # type: ignore[arg-type]
    )


# PUBLIC_INTERFACE
@router.put(
    "/{timesheet_id}",
    response_model=TimesheetEnvelope,
    summary="Update timesheet",
    description=(
        "Update a timesheet. Omitted or blank week fields keep their values; a supplied "
        "entries list replaces the stored one and totalHours is recomputed."
    ),
    responses={
        200: {"description": "Timesheet updated"},
        404: {"description": "Timesheet not found"},
    },
)
def update_timesheet(
    timesheet_id: int,
    payload: TimesheetUpdate,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    repo: TimesheetRepository = Depends(_get_repo),
) -> TimesheetEnvelope:
    result = repo.update(identity.user_id, timesheet_id, payload.model_dump(exclude_unset=True))
    _check_persisted(request, result)
    return TimesheetEnvelope(
        **record_envelope(TimesheetOut(**result.record), "Timesheet updated successfully")  # type: ignore[arg-type]
    )


# PUBLIC_INTERFACE
@router.delete(
    "/{timesheet_id}",
    response_model=MessageEnvelope,
    summary="Delete timesheet",
    description="Delete one of the caller's timesheets by ID.",
    responses={
        200: {"description": "Timesheet deleted"},
        404: {"description": "Timesheet not found"},
    },
)
def delete_timesheet(
    timesheet_id: int,
    request: Request,
    identity: Identity = Depends(get_current_identity),
    repo: TimesheetRepository = Depends(_get_repo),
) -> MessageEnvelope:
    result = repo.delete(identity.user_id, timesheet_id)
    _check_persisted(request, result)
    return MessageEnvelope(message="Timesheet deleted successfully")
