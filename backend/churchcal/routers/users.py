"""User API routes."""
import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from churchcal.database import get_db
from churchcal.dependencies import get_current_actor
from churchcal.errors import ForbiddenError, RequestValidationError
from churchcal.models.department import Department
from churchcal.models.user import User, UserRole
from churchcal.schemas.user import UserCreate, UserOut
from churchcal.services.identity import Actor

logger = logging.getLogger(__name__)
router = APIRouter()


def _require_superadmin(actor: Actor) -> None:
    if actor.role != UserRole.superadmin:
        raise ForbiddenError("Only Super Admins can manage users")


@router.get("/me", response_model=UserOut)
def get_me(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """The resolved caller."""
    return db.query(User).filter(User.user_id == actor.user_id).first()


@router.get("/", response_model=list[UserOut])
def list_users(actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """List all users (super admins only)."""
    _require_superadmin(actor)
    return db.query(User).order_by(User.name).all()


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Create a user with a role and optional department (super admins only)."""
    _require_superadmin(actor)
    if db.query(User).filter(User.email == payload.email).first():
        raise RequestValidationError.for_field("email", "Email is already registered")
    if payload.department_id and not db.query(Department).filter(
        Department.department_id == payload.department_id
    ).first():
        raise RequestValidationError.for_field("department_id", f"Unknown department: {payload.department_id}")

    user = User(**payload.model_dump())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created user %s (%s) as %s", user.user_id, user.email, user.role.value)
    return user
