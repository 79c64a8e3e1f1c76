"""PublishedEvent ORM model: public calendar copy of an approved request."""
import uuid
from sqlalchemy import Column, String, Text, Date, DateTime, Integer, Enum as SAEnum
from sqlalchemy.sql import func
from churchcal.database import Base
from churchcal.models.event_request import EventType


class PublishedEvent(Base):
    __tablename__ = "published_events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # No FK: the calendar owns this copy even if the request is later deleted.
    source_request_id = Column(String(36), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    event_type = Column(SAEnum(EventType), nullable=False)
    department_id = Column(String(36), nullable=False, index=True)
    event_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    starts_at_utc = Column(DateTime(timezone=True), nullable=False)
    ends_at_utc = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    expected_attendance = Column(Integer, nullable=True)
    published_at = Column(DateTime(timezone=True), server_default=func.now())
