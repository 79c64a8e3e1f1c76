"""Notification ORM model."""
import uuid
import enum
from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from churchcal.database import Base
from churchcal.models.user import UserRole


class NotificationType(str, enum.Enum):
    info = "info"
    success = "success"
    warning = "warning"


class Notification(Base):
    __tablename__ = "notifications"

    notification_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Exactly one of user_id / audience_role is set.
    user_id = Column(String(36), ForeignKey("users.user_id"), nullable=True, index=True)
    audience_role = Column(SAEnum(UserRole), nullable=True)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(SAEnum(NotificationType), nullable=False, default=NotificationType.info)
    resource_type = Column(String(30), nullable=False)
    resource_id = Column(String(36), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    read_at = Column(DateTime(timezone=True), nullable=True)
