"""Notification inbox API routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from churchcal.database import get_db
from churchcal.dependencies import get_current_actor
from churchcal.schemas.notification import MarkReadOut, MarkReadPayload, NotificationInbox
from churchcal.services import notification_service
from churchcal.services.identity import Actor

router = APIRouter()


@router.get("/", response_model=NotificationInbox)
def list_notifications(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """The caller's notifications, including their role pool, newest first."""
    return notification_service.list_inbox(db, actor)


@router.post("/read", response_model=MarkReadOut)
def mark_read(payload: MarkReadPayload, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Mark selected (or all) notifications as read."""
    updated = notification_service.mark_read(
        db, actor, payload.notification_ids, mark_all=payload.mark_all_as_read,
    )
    return MarkReadOut(updated_count=updated)
