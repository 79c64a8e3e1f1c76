"""Identity resolution: the one place the workflow learns who is calling.

Authentication itself lives outside this service; whatever front door is used only has
to hand us a user id. The workflow depends on ``Actor`` and nothing else.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from churchcal.models.user import User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Snapshot of the caller for the duration of one operation."""

    user_id: str
    name: str
    email: str
    role: UserRole
    department_id: Optional[str] = None
    ip_address: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, ip_address: Optional[str] = None) -> "Actor":
        return cls(
            user_id=user.user_id,
            name=user.name,
            email=user.email,
            role=UserRole(user.role),
            department_id=user.department_id,
            ip_address=ip_address,
        )


def resolve_actor(db: Session, user_id: Optional[str], ip_address: Optional[str] = None) -> Optional[Actor]:
    """Return the Actor for ``user_id`` or None when the caller is unknown."""
    if not user_id:
        return None
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        logger.info("Unknown caller id %s", user_id)
        return None
    return Actor.from_user(user, ip_address=ip_address)
