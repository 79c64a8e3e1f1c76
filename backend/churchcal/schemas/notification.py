"""Pydantic schemas for notifications."""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from churchcal.models.notification import NotificationType
from churchcal.models.user import UserRole


class NotificationOut(BaseModel):
    notification_id: str
    user_id: Optional[str] = None
    audience_role: Optional[UserRole] = None
    title: str
    message: str
    type: NotificationType
    resource_type: str
    resource_id: str
    created_at: Optional[datetime] = None
    read_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NotificationInbox(BaseModel):
    notifications: list[NotificationOut]
    unread_count: int
    total_count: int


class MarkReadPayload(BaseModel):
    notification_ids: list[str] = []
    mark_all_as_read: bool = False


class MarkReadOut(BaseModel):
    updated_count: int
