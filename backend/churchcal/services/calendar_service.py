"""Public calendar: publication of approved requests and event queries.

Requests carry a calendar-local date plus ``HH:MM`` times. Publication pins them to
absolute UTC instants in ``CALENDAR_TIMEZONE`` so calendar clients never do timezone math.
"""
import logging
from datetime import date, datetime, time
from typing import Optional

import pytz
from sqlalchemy.orm import Session

from churchcal.config import settings
from churchcal.errors import NotFoundError
from churchcal.models.event_request import EventRequest, EventType
from churchcal.models.published_event import PublishedEvent

logger = logging.getLogger(__name__)


def calendar_tz():
    return pytz.timezone(settings.CALENDAR_TIMEZONE)


def today_local() -> date:
    """Today's date on the congregation's calendar."""
    return datetime.now(calendar_tz()).date()


def local_to_utc(event_date: date, hhmm: str) -> datetime:
    """Combine a calendar-local date and ``HH:MM`` into an aware UTC datetime."""
    hours, minutes = (int(part) for part in hhmm.split(":"))
    local = calendar_tz().localize(datetime.combine(event_date, time(hours, minutes)))
    return local.astimezone(pytz.utc)


def publish(db: Session, req: EventRequest) -> PublishedEvent:
    """Copy the scheduling fields of an approved request onto the public calendar.

    Flushes but does not commit; approval commits it with the status change.
    """
    event = PublishedEvent(
        source_request_id=req.request_id,
        title=req.title,
        event_type=req.event_type,
        department_id=req.department_id,
        event_date=req.event_date,
        start_time=req.start_time,
        end_time=req.end_time,
        starts_at_utc=local_to_utc(req.event_date, req.start_time),
        ends_at_utc=local_to_utc(req.event_date, req.end_time),
        location=req.location,
        description=req.description,
        expected_attendance=req.expected_attendance,
        published_at=datetime.now(pytz.utc),
    )
    db.add(event)
    db.flush()
    logger.info("Published event %s from request %s", event.event_id, req.request_id)
    return event


def list_events(
    db: Session,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    event_types: Optional[list[EventType]] = None,
    department_id: Optional[str] = None,
) -> list[PublishedEvent]:
    """Published events in date order, optionally filtered."""
    query = db.query(PublishedEvent)
    if start_date:
        query = query.filter(PublishedEvent.event_date >= start_date)
    if end_date:
        query = query.filter(PublishedEvent.event_date <= end_date)
    if event_types:
        query = query.filter(PublishedEvent.event_type.in_(event_types))
    if department_id:
        query = query.filter(PublishedEvent.department_id == department_id)
    return query.order_by(PublishedEvent.event_date, PublishedEvent.start_time).all()


def get_event(db: Session, event_id: str) -> PublishedEvent:
    event = db.query(PublishedEvent).filter(PublishedEvent.event_id == event_id).first()
    if not event:
        raise NotFoundError("Event", event_id)
    return event
