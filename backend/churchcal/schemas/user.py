"""Pydantic schemas for Users and Departments."""
from __future__ import annotations
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from churchcal.models.user import UserRole


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: UserRole = UserRole.member
    department_id: Optional[str] = None


class UserOut(BaseModel):
    user_id: str
    name: str
    email: str
    role: UserRole
    department_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DepartmentOut(BaseModel):
    department_id: str
    name: str
    lead_name: Optional[str] = None
    lead_email: Optional[str] = None
    lead_phone: Optional[str] = None
    color: Optional[str] = None

    model_config = {"from_attributes": True}
