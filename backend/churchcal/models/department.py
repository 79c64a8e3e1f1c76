"""Department ORM model."""
from sqlalchemy import Column, String, DateTime
from sqlalchemy.sql import func
from churchcal.database import Base


class Department(Base):
    __tablename__ = "departments"

    department_id = Column(String(36), primary_key=True)
    name = Column(String(150), nullable=False, unique=True)
    lead_name = Column(String(100), nullable=True)
    lead_email = Column(String(255), nullable=True)
    lead_phone = Column(String(30), nullable=True)
    color = Column(String(7), nullable=True)  # "#RRGGBB"
    created_at = Column(DateTime(timezone=True), server_default=func.now())
