"""Audit trail API routes."""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from churchcal.database import get_db
from churchcal.dependencies import get_current_actor
from churchcal.models.audit_log import AuditAction
from churchcal.schemas.audit_log import AuditLogPage
from churchcal.services import audit_service
from churchcal.services.identity import Actor

router = APIRouter()


@router.get("/", response_model=AuditLogPage)
def list_audit_logs(
    request_id: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    action: Optional[AuditAction] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Filtered audit trail, newest first (admins and super admins)."""
    logs = audit_service.query_audit_logs(
        db, actor,
        request_id=request_id,
        user_id=user_id,
        start_date=start_date,
        end_date=end_date,
        action=action,
        resource_type=resource_type,
    )
    return {"logs": logs, "total_count": len(logs)}
