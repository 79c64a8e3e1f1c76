"""FastAPI dependencies shared by the routers."""
from typing import Optional

from fastapi import BackgroundTasks, Depends, Header, Request
from sqlalchemy.orm import Session, sessionmaker

from churchcal.database import get_db
from churchcal.errors import UnauthenticatedError
from churchcal.services.identity import Actor, resolve_actor
from churchcal.services.notification_service import BackgroundNotificationDispatcher


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_current_actor(
    request: Request,
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> Actor:
    """Resolve the caller from the ``X-User-Id`` header; 401 when unknown."""
    actor = resolve_actor(db, x_user_id, client_ip(request))
    if actor is None:
        raise UnauthenticatedError()
    return actor


def get_dispatcher(background_tasks: BackgroundTasks, db: Session = Depends(get_db)) -> BackgroundNotificationDispatcher:
    """Notifications are delivered after the response, in their own sessions."""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db.get_bind())
    return BackgroundNotificationDispatcher(background_tasks, factory)
