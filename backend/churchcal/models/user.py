"""User ORM model: identity snapshot used by the workflow."""
import uuid
import enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SAEnum
from sqlalchemy.sql import func
from churchcal.database import Base


class UserRole(str, enum.Enum):
    member = "member"
    lead = "lead"
    admin = "admin"
    superadmin = "superadmin"


class User(Base):
    __tablename__ = "users"

    user_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    role = Column(SAEnum(UserRole), nullable=False, default=UserRole.member)
    department_id = Column(String(36), ForeignKey("departments.department_id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
