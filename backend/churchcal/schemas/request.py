"""Pydantic schemas for event requests and their workflow payloads."""
from __future__ import annotations
import re
from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from churchcal.models.event_request import EventType, RequestStatus
from churchcal.schemas.audit_log import AuditLogOut
from churchcal.schemas.event import PublishedEventOut

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")

# Set only by dedicated transitions, never through a create/update payload.
PROTECTED_FIELDS = frozenset({
    "id", "request_id", "request_number", "sequence", "version",
    "status", "creator_id", "creator_name", "admin_id", "admin_name",
    "approved_by", "approved_at", "submitted_at", "reviewed_at",
    "created_at", "updated_at", "last_feedback",
})

REQUIRED_FIELDS = (
    "title", "event_type", "department_id", "event_date", "start_time", "end_time", "location",
)


def normalize_time(value: str) -> str:
    """Validate ``H:MM``/``HH:MM`` (24h) and return zero-padded ``HH:MM``."""
    match = TIME_PATTERN.match(value)
    if not match:
        raise ValueError("Invalid time format (HH:MM)")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def minutes(value: str) -> int:
    hours, mins = value.split(":")
    return int(hours) * 60 + int(mins)


def field_errors(exc: ValidationError) -> list[dict[str, Any]]:
    """Flatten a pydantic ValidationError into ``[{"field", "message"}]``."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
        errors.append({"field": field, "message": err.get("msg", "Invalid value")})
    return errors


class RequestCreate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: str = Field(min_length=3, max_length=255)
    event_type: EventType
    department_id: str = Field(min_length=1, max_length=36)
    event_date: date
    start_time: str
    end_time: str
    location: str = Field(min_length=2, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    expected_attendance: Optional[int] = Field(default=None, gt=0)
    budget: Optional[float] = Field(default=None, ge=0)
    special_requirements: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        return normalize_time(value) if value is not None else value


class RequestUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    title: Optional[str] = Field(default=None, min_length=3, max_length=255)
    event_type: Optional[EventType] = None
    department_id: Optional[str] = Field(default=None, min_length=1, max_length=36)
    event_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = Field(default=None, min_length=2, max_length=255)
    description: Optional[str] = Field(default=None, min_length=10, max_length=2000)
    expected_attendance: Optional[int] = Field(default=None, gt=0)
    budget: Optional[float] = Field(default=None, ge=0)
    special_requirements: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def _check_time(cls, value: Optional[str]) -> Optional[str]:
        return normalize_time(value) if value is not None else value


class ReturnPayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    feedback: str = Field(min_length=10, max_length=1000)


class DeletePayload(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    reason: Optional[str] = Field(default=None, min_length=10, max_length=500)


class RequestOut(BaseModel):
    request_id: str
    request_number: str
    title: str
    event_type: EventType
    department_id: str
    creator_id: str
    creator_name: str
    admin_id: Optional[str] = None
    admin_name: Optional[str] = None
    approved_by: Optional[str] = None
    event_date: date
    start_time: str
    end_time: str
    location: str
    description: Optional[str] = None
    expected_attendance: Optional[int] = None
    budget: Optional[float] = None
    special_requirements: Optional[str] = None
    status: RequestStatus
    last_feedback: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class RequestDetailOut(RequestOut):
    audit_logs: list[AuditLogOut] = []
    allowed_actions: list[str] = []


class ApprovalOut(BaseModel):
    request: RequestOut
    published_event: PublishedEventOut


class DeleteOut(BaseModel):
    message: str
    deleted_id: str
    audit_id: str
