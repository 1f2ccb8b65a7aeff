from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

def _blank_to_none(value: Any) -> Any:
    """Treat empty or whitespace-only strings as 'not supplied'."""
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class _CamelModel(BaseModel):
    """Accepts and emits camelCase keys, also accepts the snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TimeEntryIn(_CamelModel):
    """
    One time entry as sent by a client.

    hours may be blank or missing to mean "no hours logged".
    """

    id: Optional[int] = Field(default=None, description="Existing entry id to keep on update")
    date: dt.date = Field(..., description="Day the time was logged for (ISO8601)")
    hours: Optional[float] = Field(default=None, ge=0, le=24, description="0..24, blank for none")
    description: Optional[str] = Field(default=None, description="1..200 characters, defaults to 'New Task'")
    project: Optional[str] = Field(default=None, description="Up to 100 characters, defaults to 'General'")

    @field_validator("hours", mode="before")
    @classmethod
    def blank_hours(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("hours must be a number between 0 and 24")
        return _blank_to_none(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        """
        If description is provided, strip whitespace and enforce 1..200 length.
        """
        if v is None:
            return v
        s = v.strip()
        if not (1 <= len(s) <= 200):
            raise ValueError("Description must be between 1 and 200 characters")
        return s

    @field_validator("project")
    @classmethod
    def validate_project(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        s = v.strip()
        if len(s) > 100:
            raise ValueError("Project name must be less than 100 characters")
        return s


# PUBLIC_INTERFACE
class TimesheetCreate(_CamelModel):
    """
    Schema for creating a timesheet.

    Week boundaries default to the current Monday..Sunday week when omitted.
    totalHours is derived server-side; a client-supplied value is ignored.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "weekStarting": "2025-01-06",
                "weekEnding": "2025-01-12",
                "entries": [
                    {"date": "2025-01-06", "hours": 8, "description": "API work", "project": "Backend"},
                    {"date": "2025-01-07", "hours": "", "description": "Leave"},
                ],
            }
        },
    )

    week_starting: Optional[dt.date] = Field(default=None, description="First day of the week (ISO8601)")
    week_ending: Optional[dt.date] = Field(default=None, description="Last day of the week (ISO8601)")
    entries: List[TimeEntryIn] = Field(..., min_length=1, description="At least one entry is required")

    @field_validator("week_starting", "week_ending", mode="before")
    @classmethod
    def blank_week(cls, v: Any) -> Any:
        return _blank_to_none(v)


# PUBLIC_INTERFACE
class TimesheetUpdate(_CamelModel):
    """
    Schema for updating a timesheet.

    All fields are optional. Blank week values keep the stored ones; a
    supplied entries list replaces the stored list as a whole.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "weekStarting": "2025-01-06",
                "entries": [{"id": 1, "date": "2025-01-06", "hours": 7.5, "description": "API work"}],
            }
        },
    )

    week_starting: Optional[dt.date] = Field(default=None, description="First day of the week (ISO8601)")
    week_ending: Optional[dt.date] = Field(default=None, description="Last day of the week (ISO8601)")
    entries: Optional[List[TimeEntryIn]] = Field(default=None, description="Replacement entries")

    @field_validator("week_starting", "week_ending", mode="before")
    @classmethod
    def blank_week(cls, v: Any) -> Any:
        return _blank_to_none(v)


# PUBLIC_INTERFACE
class TimeEntryOut(_CamelModel):
    id: int
    date: Optional[dt.date] = None
    hours: Optional[float] = None
    description: str
    project: str


# PUBLIC_INTERFACE
class TimesheetOut(_CamelModel):
    """
    Schema returned by the API for a timesheet.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 3,
                "ownerId": 1,
                "weekStarting": "2025-01-06",
                "weekEnding": "2025-01-12",
                "totalHours": 8.0,
                "entries": [
                    {"id": 201, "date": "2025-01-06", "hours": 8.0, "description": "API work", "project": "Backend"},
                    {"id": 202, "date": "2025-01-07", "hours": None, "description": "Leave", "project": "General"},
                ],
            }
        },
    )

    id: int = Field(..., description="Unique identifier of the timesheet")
    owner_id: int = Field(..., description="Id of the owning user")
    week_starting: dt.date
    week_ending: dt.date
    total_hours: float = Field(..., description="Sum of entry hours, blanks counted as 0")
    entries: List[TimeEntryOut]


class TimesheetEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: TimesheetOut


class TimesheetListEnvelope(BaseModel):
    success: bool = True
    data: List[TimesheetOut]
    total: int


class MessageEnvelope(BaseModel):
    success: bool = True
    message: str


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    """Credentials for POST /api/auth/login."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "john@example.com", "password": "password123"}}
    )

    email: EmailStr = Field(..., description="Account email address")
    password: str = Field(..., min_length=1, description="Account password")

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str


class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserOut


class ProfileResponse(BaseModel):
    user: UserOut
