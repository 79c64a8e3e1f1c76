"""Pydantic schemas for published calendar events."""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from churchcal.models.event_request import EventType


class PublishedEventOut(BaseModel):
    event_id: str
    source_request_id: str
    title: str
    event_type: EventType
    department_id: str
    event_date: date
    start_time: str
    end_time: str
    starts_at_utc: datetime
    ends_at_utc: datetime
    location: str
    description: Optional[str] = None
    expected_attendance: Optional[int] = None
    published_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
