"""Notification dispatch and inbox queries.

The workflow hands over ``NotificationMessage`` values only after its transaction has
committed. Delivery writes each message in its own session, retrying a bounded number of
times; a delivery that still fails is logged and dropped, never rolled back into the
transition that produced it.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from churchcal.config import settings
from churchcal.models.notification import Notification, NotificationType
from churchcal.models.user import UserRole
from churchcal.services.identity import Actor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationMessage:
    """One notification to deliver, addressed to a user or to a role pool."""

    title: str
    message: str
    type: NotificationType
    resource_type: str
    resource_id: str
    user_id: Optional[str] = None
    audience_role: Optional[UserRole] = None

    def to_model(self) -> Notification:
        return Notification(
            user_id=self.user_id,
            audience_role=self.audience_role,
            title=self.title,
            message=self.message,
            type=self.type,
            resource_type=self.resource_type,
            resource_id=self.resource_id,
            created_at=datetime.now(timezone.utc),
        )


class NotificationDispatcher:
    """Delivers messages immediately, each in a fresh session."""

    def __init__(self, session_factory: Callable[[], Session], max_attempts: Optional[int] = None):
        self.session_factory = session_factory
        self.max_attempts = max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS

    @classmethod
    def for_session(cls, db: Session) -> "NotificationDispatcher":
        """Build a dispatcher writing to the same database as ``db``."""
        return cls(sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind()))

    def enqueue(self, message: NotificationMessage) -> None:
        self.deliver(message)

    def deliver(self, message: NotificationMessage) -> bool:
        """Persist ``message``; returns False once every attempt has failed."""
        for attempt in range(1, self.max_attempts + 1):
            session = self.session_factory()
            try:
                session.add(message.to_model())
                session.commit()
                return True
            except SQLAlchemyError as exc:
                session.rollback()
                logger.warning(
                    "Notification '%s' for %s delivery attempt %d/%d failed: %s",
                    message.title, message.user_id or message.audience_role,
                    attempt, self.max_attempts, exc,
                )
            finally:
                session.close()
        logger.error(
            "Dropping notification '%s' for %s %s after %d attempts",
            message.title, message.resource_type, message.resource_id, self.max_attempts,
        )
        return False


class BackgroundNotificationDispatcher(NotificationDispatcher):
    """Defers delivery to FastAPI BackgroundTasks so the response is not held up."""

    def __init__(self, background_tasks, session_factory: Callable[[], Session], max_attempts: Optional[int] = None):
        super().__init__(session_factory, max_attempts)
        self.background_tasks = background_tasks

    def enqueue(self, message: NotificationMessage) -> None:
        self.background_tasks.add_task(self.deliver, message)


def dispatch_all(dispatcher: NotificationDispatcher, messages: list[NotificationMessage]) -> None:
    """Hand every message to the dispatcher; one bad message never blocks the rest."""
    for message in messages:
        try:
            dispatcher.enqueue(message)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to enqueue notification '%s' for %s", message.title, message.resource_id)


def _inbox_query(db: Session, actor: Actor):
    return db.query(Notification).filter(
        or_(Notification.user_id == actor.user_id, Notification.audience_role == actor.role)
    )


def list_inbox(db: Session, actor: Actor) -> dict:
    """Direct notifications plus those addressed to the caller's role pool, newest first."""
    notifications = _inbox_query(db, actor).order_by(Notification.created_at.desc()).all()
    unread = sum(1 for n in notifications if n.read_at is None)
    return {
        "notifications": notifications,
        "unread_count": unread,
        "total_count": len(notifications),
    }


def mark_read(db: Session, actor: Actor, notification_ids: list[str], mark_all: bool = False) -> int:
    """Acknowledge notifications visible to the caller; returns how many changed."""
    query = _inbox_query(db, actor).filter(Notification.read_at.is_(None))
    if not mark_all:
        if not notification_ids:
            return 0
        query = query.filter(Notification.notification_id.in_(notification_ids))
    now = datetime.now(timezone.utc)
    updated = 0
    for notification in query.all():
        notification.read_at = now
        updated += 1
    db.commit()
    logger.info("User %s marked %d notifications read", actor.user_id, updated)
    return updated
