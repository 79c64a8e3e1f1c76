"""Public calendar API routes: published events, no authentication."""
import logging
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from churchcal.database import get_db
from churchcal.errors import RequestValidationError
from churchcal.models.event_request import EventType
from churchcal.schemas.event import PublishedEventOut
from churchcal.services import calendar_service

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[PublishedEventOut])
def list_events(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    type: Optional[str] = Query(None, description="Comma-separated: sunday,regional,local"),
    department: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """List published events in date order."""
    event_types = None
    if type:
        try:
            event_types = [EventType(t.strip()) for t in type.split(",") if t.strip()]
        except ValueError:
            raise RequestValidationError.for_field("type", f"Unknown event type in '{type}'")
    return calendar_service.list_events(
        db, start_date=start_date, end_date=end_date, event_types=event_types, department_id=department,
    )


@router.get("/{event_id}", response_model=PublishedEventOut)
def get_event(event_id: str, db: Session = Depends(get_db)):
    """Fetch a single published event."""
    return calendar_service.get_event(db, event_id)
