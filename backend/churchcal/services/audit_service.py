"""Audit trail construction and queries."""
import logging
from datetime import date, datetime, timezone
from typing import Any, Optional

from sqlalchemy.orm import Session

from churchcal.errors import ForbiddenError
from churchcal.models.audit_log import AuditAction, AuditLogEntry
from churchcal.models.user import UserRole
from churchcal.services.identity import Actor

logger = logging.getLogger(__name__)

RESOURCE_EVENT_REQUEST = "event_request"

AUDIT_READER_ROLES = frozenset({UserRole.admin, UserRole.superadmin})


def json_safe(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "value"):  # enums
        return value.value
    return value


def diff_fields(before: dict[str, Any], after: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Return ``{field: {"from": old, "to": new}}`` for every key whose value changed."""
    changes = {}
    for field, new_value in after.items():
        old_value = before.get(field)
        if json_safe(old_value) != json_safe(new_value):
            changes[field] = {"from": json_safe(old_value), "to": json_safe(new_value)}
    return changes


def status_change(from_status, to_status) -> dict[str, Any]:
    return {"from": json_safe(from_status), "to": json_safe(to_status)}


def build_entry(
    actor: Actor,
    action: AuditAction,
    resource_id: str,
    changes: dict[str, Any],
    reason: Optional[str] = None,
    resource_type: str = RESOURCE_EVENT_REQUEST,
) -> AuditLogEntry:
    """Create an (unsaved) audit entry with a snapshot of the actor."""
    return AuditLogEntry(
        user_id=actor.user_id,
        user_name=actor.name,
        user_role=actor.role.value,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        changes=changes,
        reason=reason,
        ip_address=actor.ip_address or "unknown",
        created_at=datetime.now(timezone.utc),
    )


def query_audit_logs(
    db: Session,
    actor: Actor,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    action: Optional[AuditAction] = None,
    resource_type: Optional[str] = None,
) -> list[AuditLogEntry]:
    """Filtered audit trail, newest first. Admins and super admins only."""
    if actor.role not in AUDIT_READER_ROLES:
        raise ForbiddenError("Only administrators can view audit logs")

    query = db.query(AuditLogEntry)
    if request_id:
        query = query.filter(AuditLogEntry.resource_id == request_id)
    if user_id:
        query = query.filter(AuditLogEntry.user_id == user_id)
    if start_date:
        query = query.filter(AuditLogEntry.created_at >= start_date)
    if end_date:
        query = query.filter(AuditLogEntry.created_at <= end_date)
    if action:
        query = query.filter(AuditLogEntry.action == action)
    if resource_type:
        query = query.filter(AuditLogEntry.resource_type == resource_type)
    return query.order_by(AuditLogEntry.created_at.desc()).all()
