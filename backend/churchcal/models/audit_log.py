"""AuditLogEntry ORM model: append-only record of every workflow mutation."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, JSON, Enum as SAEnum
from sqlalchemy.sql import func
from churchcal.database import Base


class AuditAction(str, enum.Enum):
    create_request = "create_request"
    update_request = "update_request"
    submit_request = "submit_request"
    resubmit_request = "resubmit_request"
    claim_request = "claim_request"
    forward_request = "forward_request"
    approve_request = "approve_request"
    return_request = "return_request"
    withdraw_request = "withdraw_request"
    delete_request = "delete_request"


class AuditLogEntry(Base):
    __tablename__ = "audit_logs"

    audit_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Snapshot of the actor at the time of the action; no FK so the trail outlives users.
    user_id = Column(String(36), nullable=False)
    user_name = Column(String(100), nullable=False)
    user_role = Column(String(20), nullable=False)
    action = Column(SAEnum(AuditAction), nullable=False)
    resource_type = Column(String(30), nullable=False, default="event_request")
    resource_id = Column(String(36), nullable=False, index=True)
    changes = Column(JSON, nullable=False, default=dict)
    reason = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
