from __future__ import annotations

from typing import Optional


class TimesheetError(Exception):
    """Base class for errors raised by the timesheet core."""

    status_code: int = 500
    default_message: str = "Something went wrong!"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(TimesheetError):
    """Record is absent or owned by someone else. Both cases look the same."""

    status_code = 404
    default_message = "Timesheet not found"


class AccessDeniedError(TimesheetError):
    """Caller lacks the elevated role for a cross-owner operation."""

    status_code = 403
    default_message = "Access denied. Admin role required."


class AuthenticationError(TimesheetError):
    status_code = 401
    default_message = "Invalid email or password"


class PersistenceError(TimesheetError):
    """
    Write to the backing document failed.

    Only raised at the request boundary when strict persistence is enabled;
    otherwise the failure travels as a WriteResult and is just logged.
    """

    status_code = 503
    default_message = "Timesheet could not be saved, please retry"
