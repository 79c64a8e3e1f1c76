"""EventRequest ORM model: the entity moving through the approval workflow."""
import uuid
import enum
from sqlalchemy import (
    Column, String, Text, Date, DateTime, Integer, Float, ForeignKey, Enum as SAEnum,
)
from sqlalchemy.sql import func
from churchcal.database import Base


class EventType(str, enum.Enum):
    sunday = "sunday"
    regional = "regional"
    local = "local"


class RequestStatus(str, enum.Enum):
    draft = "draft"
    submitted = "submitted"
    under_review = "under_review"
    ready_for_approval = "ready_for_approval"
    approved = "approved"
    returned = "returned"
    withdrawn = "withdrawn"
    # Only ever the "to" side of a delete audit entry; rows are removed, not marked.
    deleted = "deleted"


class EventRequest(Base):
    __tablename__ = "event_requests"

    request_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    sequence = Column(Integer, nullable=False, unique=True)
    request_number = Column(String(20), nullable=False, unique=True)

    title = Column(String(255), nullable=False)
    event_type = Column(SAEnum(EventType), nullable=False)
    department_id = Column(String(36), ForeignKey("departments.department_id"), nullable=False)
    creator_id = Column(String(36), ForeignKey("users.user_id"), nullable=False)
    creator_name = Column(String(100), nullable=False)

    admin_id = Column(String(36), ForeignKey("users.user_id"), nullable=True)
    admin_name = Column(String(100), nullable=True)
    approved_by = Column(String(36), ForeignKey("users.user_id"), nullable=True)

    event_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)  # "HH:MM", calendar-local
    end_time = Column(String(5), nullable=False)
    location = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    expected_attendance = Column(Integer, nullable=True)
    budget = Column(Float, nullable=True)
    special_requirements = Column(Text, nullable=True)

    status = Column(SAEnum(RequestStatus), nullable=False, default=RequestStatus.draft)
    last_feedback = Column(Text, nullable=True)
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
