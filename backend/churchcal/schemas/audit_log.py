"""Pydantic schemas for audit log entries."""
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel

from churchcal.models.audit_log import AuditAction


class AuditLogOut(BaseModel):
    audit_id: str
    user_id: str
    user_name: str
    user_role: str
    action: AuditAction
    resource_type: str
    resource_id: str
    changes: dict[str, Any]
    reason: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AuditLogPage(BaseModel):
    logs: list[AuditLogOut]
    total_count: int
