"""Event request workflow service: every mutation of an EventRequest goes through here.

Each operation follows the same path:
- authorize against the transition table (role, then status, then ownership)
- validate the payload; nothing is written when validation fails
- conditional write keyed on the status/version that was authorized
- append exactly one audit entry in the same transaction, then commit
- hand notifications to the dispatcher once the commit has succeeded
"""
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from churchcal.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidStateTransitionError,
    NotFoundError,
    RequestValidationError,
)
from churchcal.models.audit_log import AuditAction, AuditLogEntry
from churchcal.models.department import Department
from churchcal.models.event_request import EventRequest, RequestStatus
from churchcal.models.notification import NotificationType
from churchcal.models.published_event import PublishedEvent
from churchcal.models.user import UserRole
from churchcal.schemas.request import (
    PROTECTED_FIELDS,
    REQUIRED_FIELDS,
    DeletePayload,
    RequestCreate,
    RequestUpdate,
    ReturnPayload,
    field_errors,
    minutes,
)
from churchcal.services import calendar_service, workflow
from churchcal.services.audit_service import (
    RESOURCE_EVENT_REQUEST,
    build_entry,
    diff_fields,
    json_safe,
    status_change,
)
from churchcal.services.identity import Actor
from churchcal.services.notification_service import (
    NotificationDispatcher,
    NotificationMessage,
    dispatch_all,
)
from churchcal.services.request_store import RequestStore, request_snapshot
from churchcal.services.workflow import Transition, WorkflowAction

logger = logging.getLogger(__name__)


@dataclass
class DeleteResult:
    request_id: str
    audit_id: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------
def _parse(model: type[BaseModel], payload: Optional[Mapping[str, Any]], message: str) -> BaseModel:
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise RequestValidationError("Request body must be a JSON object")
    protected = sorted(PROTECTED_FIELDS.intersection(payload))
    if protected:
        raise RequestValidationError(
            "Protected fields can only be changed by workflow actions",
            [{"field": f, "message": f"'{f}' cannot be set directly"} for f in protected],
        )
    try:
        return model.model_validate(dict(payload))
    except ValidationError as exc:
        raise RequestValidationError(message, field_errors(exc)) from exc


def _check_department(db: Session, department_id: str) -> None:
    exists = db.query(Department).filter(Department.department_id == department_id).first()
    if not exists:
        raise RequestValidationError.for_field("department_id", f"Unknown department: {department_id}")


def _check_time_window(start_time: str, end_time: str) -> None:
    if minutes(end_time) <= minutes(start_time):
        raise RequestValidationError.for_field("end_time", "End time must be after start time")


# ---------------------------------------------------------------------------
# Transition plumbing
# ---------------------------------------------------------------------------
def _load(store: RequestStore, request_id: str, action: WorkflowAction, actor: Actor) -> tuple[EventRequest, Transition]:
    workflow.require_role(action, actor)
    req = store.get(request_id)
    return req, workflow.authorize(action, actor, req)


def _resolve_conflict(store: RequestStore, request_id: str, action: str, expected: RequestStatus) -> None:
    """Translate a lost compare-and-swap into what the caller would see on retry."""
    current = store.find(request_id)
    if current is None:
        raise NotFoundError("Request", request_id)
    if current.status != expected:
        raise InvalidStateTransitionError(action, RequestStatus(current.status).value)
    raise ConflictError(request_id, expected.value)


def _apply(
    db: Session,
    store: RequestStore,
    req: EventRequest,
    rule: Transition,
    actor: Actor,
    patch: dict[str, Any],
    changes: Optional[dict[str, Any]] = None,
    reason: Optional[str] = None,
    on_write: Optional[Callable[[EventRequest, dict[str, Any]], Any]] = None,
) -> tuple[EventRequest, Any]:
    """Conditionally write ``patch`` plus one audit entry, atomically."""
    request_id = req.request_id
    from_status = RequestStatus(req.status)
    expected_version = req.version

    values = dict(patch)
    values["updated_at"] = _now()
    audit_changes: dict[str, Any] = {}
    if rule.target is not None:
        values["status"] = rule.target
        audit_changes["status"] = status_change(from_status, rule.target)
    audit_changes.update(changes or {})

    extra = None
    try:
        updated = store.conditional_update(request_id, from_status, expected_version, values)
        if on_write is not None:
            extra = on_write(updated, audit_changes)
        store.write_audit(build_entry(actor, rule.audit_action, request_id, audit_changes, reason))
        db.commit()
    except ConflictError:
        db.rollback()
        logger.info("User %s lost a concurrent %s on request %s", actor.user_id, rule.action.value, request_id)
        _resolve_conflict(store, request_id, rule.action.value, from_status)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "Failed to %s request %s for user %s (%s)",
            rule.action.value, request_id, actor.user_id, actor.role.value,
        )
        raise InternalError() from exc

    db.refresh(updated)
    logger.info(
        "User %s (%s) %s request %s: %s -> %s",
        actor.user_id, actor.role.value, rule.action.value, request_id,
        from_status.value, RequestStatus(updated.status).value,
    )
    return updated, extra


def _notify(db: Session, dispatcher: Optional[NotificationDispatcher], messages: list[NotificationMessage]) -> None:
    if not messages:
        return
    dispatch_all(dispatcher or NotificationDispatcher.for_session(db), messages)


def _message(req: EventRequest, title: str, message: str, type_: NotificationType, **recipient) -> NotificationMessage:
    return NotificationMessage(
        title=title,
        message=message,
        type=type_,
        resource_type=RESOURCE_EVENT_REQUEST,
        resource_id=req.request_id,
        **recipient,
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------
def list_requests(
    db: Session,
    actor: Actor,
    statuses: Optional[list[RequestStatus]] = None,
    department_id: Optional[str] = None,
) -> list[EventRequest]:
    """Role-scoped listing; extra filters only ever narrow the role's base set."""
    scope = workflow.list_scope(actor)
    if statuses:
        wanted = frozenset(statuses)
        scope.statuses = wanted if scope.statuses is None else scope.statuses & wanted
        if not scope.statuses:
            return []
    if department_id:
        if scope.department_id is not None and scope.department_id != department_id:
            return []
        scope.department_id = department_id
    return RequestStore(db).list(scope)


def get_request(db: Session, request_id: str, actor: Actor) -> EventRequest:
    req = RequestStore(db).get(request_id)
    workflow.ensure_can_view(actor, req)
    return req


def get_request_detail(db: Session, request_id: str, actor: Actor) -> dict[str, Any]:
    """Request plus its audit trail and the actions the caller may take next."""
    store = RequestStore(db)
    req = get_request(db, request_id, actor)
    return {
        "request": req,
        "audit_logs": list(store.audit_trail(request_id)),
        "allowed_actions": workflow.allowed_actions(actor, req),
    }


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------
def create_request(db: Session, actor: Actor, payload: Optional[Mapping[str, Any]]) -> EventRequest:
    """Create a draft request owned by the calling lead."""
    if actor.role != UserRole.lead:
        raise ForbiddenError("Only department leads can create event requests")

    data = _parse(RequestCreate, payload, "Invalid request data")
    _check_department(db, data.department_id)
    _check_time_window(data.start_time, data.end_time)
    if data.event_date < calendar_service.today_local():
        raise RequestValidationError.for_field("event_date", "Event date cannot be in the past")

    store = RequestStore(db)
    now = _now()
    fields = data.model_dump()
    fields.update(
        creator_id=actor.user_id,
        creator_name=actor.name,
        status=RequestStatus.draft,
        created_at=now,
        updated_at=now,
    )
    try:
        req = store.create(fields)
        store.write_audit(build_entry(
            actor, AuditAction.create_request, req.request_id,
            {"status": status_change(None, RequestStatus.draft)},
        ))
        db.commit()
    except ConflictError:
        db.rollback()
        raise
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to create request for user %s", actor.user_id)
        raise InternalError() from exc

    db.refresh(req)
    logger.info("Created request %s (%s) by lead %s", req.request_number, req.request_id, actor.user_id)
    return req


def update_request(
    db: Session, request_id: str, actor: Actor, payload: Optional[Mapping[str, Any]]
) -> EventRequest:
    """Edit scheduling fields while the request is editable for the caller's role."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.update, actor)

    data = _parse(RequestUpdate, payload, "Invalid update data")
    updates = data.model_dump(exclude_unset=True)
    if not updates:
        raise RequestValidationError("No fields to update")
    nulled = [f for f in REQUIRED_FIELDS if f in updates and updates[f] is None]
    if nulled:
        raise RequestValidationError(
            "Required fields cannot be cleared",
            [{"field": f, "message": f"'{f}' is required"} for f in nulled],
        )
    if "department_id" in updates:
        _check_department(db, updates["department_id"])
    _check_time_window(updates.get("start_time", req.start_time), updates.get("end_time", req.end_time))

    before = {field: getattr(req, field) for field in updates}
    changes = diff_fields(before, updates)
    updated, _ = _apply(db, store, req, rule, actor, updates, changes=changes)
    return updated


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------
def _admin_pool_message(req: EventRequest, actor: Actor, title: str, verb: str) -> NotificationMessage:
    return _message(
        req, title, f"{actor.name} {verb} an event request: {req.title}",
        NotificationType.info, audience_role=UserRole.admin,
    )


def submit_request(
    db: Session, request_id: str, actor: Actor, dispatcher: Optional[NotificationDispatcher] = None
) -> EventRequest:
    """Lead sends a draft to the admin pool."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.submit, actor)

    now = _now()
    patch = {"submitted_at": req.submitted_at or now}
    updated, _ = _apply(db, store, req, rule, actor, patch, changes={"submitted_at": json_safe(patch["submitted_at"])})
    _notify(db, dispatcher, [_admin_pool_message(updated, actor, "New Event Request", "submitted")])
    return updated


def resubmit_request(
    db: Session, request_id: str, actor: Actor, dispatcher: Optional[NotificationDispatcher] = None
) -> EventRequest:
    """Lead sends a returned or withdrawn request back to the admin pool."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.resubmit, actor)

    patch = {"submitted_at": req.submitted_at or _now()}
    updated, _ = _apply(db, store, req, rule, actor, patch)
    _notify(db, dispatcher, [_admin_pool_message(updated, actor, "Event Request Resubmitted", "resubmitted")])
    return updated


def claim_request(
    db: Session, request_id: str, actor: Actor, dispatcher: Optional[NotificationDispatcher] = None
) -> EventRequest:
    """Admin takes a submitted request for review."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.claim, actor)

    patch = {
        "admin_id": actor.user_id,
        "admin_name": actor.name,
        "reviewed_at": req.reviewed_at or _now(),
    }
    updated, _ = _apply(
        db, store, req, rule, actor, patch,
        changes={"admin_id": actor.user_id, "reviewed_at": json_safe(patch["reviewed_at"])},
    )
    _notify(db, dispatcher, [_message(
        updated, "Request Under Review",
        f"{actor.name} is now reviewing your event request: {updated.title}",
        NotificationType.info, user_id=updated.creator_id,
    )])
    return updated


def forward_request(
    db: Session, request_id: str, actor: Actor, dispatcher: Optional[NotificationDispatcher] = None
) -> EventRequest:
    """Claiming admin escalates a reviewed request to the super admins."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.forward, actor)

    updated, _ = _apply(db, store, req, rule, actor, {})
    _notify(db, dispatcher, [_message(
        updated, "Request Ready for Approval",
        f"{actor.name} forwarded event request '{updated.title}' for your approval",
        NotificationType.success, audience_role=UserRole.superadmin,
    )])
    return updated


def approve_request(
    db: Session, request_id: str, actor: Actor, dispatcher: Optional[NotificationDispatcher] = None
) -> tuple[EventRequest, PublishedEvent]:
    """Super admin approves; the request is published to the public calendar."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.approve, actor)

    now = _now()
    patch = {"approved_at": now, "approved_by": actor.user_id}

    def _publish(updated: EventRequest, audit_changes: dict[str, Any]) -> PublishedEvent:
        event = calendar_service.publish(db, updated)
        audit_changes["approved_by"] = actor.user_id
        audit_changes["approved_at"] = json_safe(now)
        audit_changes["published_event_id"] = event.event_id
        return event

    updated, event = _apply(db, store, req, rule, actor, patch, on_write=_publish)
    db.refresh(event)

    messages = [NotificationMessage(
        title="Request Approved!",
        message=f"Your event request '{updated.title}' has been approved and published to the calendar",
        type=NotificationType.success,
        resource_type="event",
        resource_id=event.event_id,
        user_id=updated.creator_id,
    )]
    if updated.admin_id:
        messages.append(NotificationMessage(
            title="Request Approved",
            message=f"Super Admin approved event request '{updated.title}' that you reviewed",
            type=NotificationType.success,
            resource_type="event",
            resource_id=event.event_id,
            user_id=updated.admin_id,
        ))
    _notify(db, dispatcher, messages)
    return updated, event


def return_request(
    db: Session,
    request_id: str,
    actor: Actor,
    payload: Optional[Mapping[str, Any]],
    dispatcher: Optional[NotificationDispatcher] = None,
) -> EventRequest:
    """Send a request back one step with mandatory feedback.

    Admin: under_review -> returned (back to the lead, claim released).
    Super admin: ready_for_approval -> under_review (back to the assigned admin).
    """
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.return_, actor)
    feedback = _parse(ReturnPayload, payload, "Feedback is required").feedback

    patch: dict[str, Any] = {"last_feedback": feedback}
    if actor.role == UserRole.admin:
        patch.update(admin_id=None, admin_name=None)

    updated, _ = _apply(db, store, req, rule, actor, patch, reason=feedback)

    if actor.role == UserRole.admin:
        message = _message(
            updated, "Request Returned",
            f"{actor.name} returned your event request '{updated.title}' for revision. {feedback}",
            NotificationType.warning, user_id=updated.creator_id,
        )
    else:
        recipient = {"user_id": updated.admin_id} if updated.admin_id else {"audience_role": UserRole.admin}
        message = _message(
            updated, "Request Returned",
            f"Super Admin returned event request '{updated.title}' for further review. {feedback}",
            NotificationType.warning, **recipient,
        )
    _notify(db, dispatcher, [message])
    return updated


def withdraw_request(db: Session, request_id: str, actor: Actor) -> EventRequest:
    """Lead pulls a request out of review; it can be reworked and resubmitted."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.withdraw, actor)

    changes = {"admin_id": {"from": req.admin_id, "to": None}} if req.admin_id else None
    updated, _ = _apply(db, store, req, rule, actor, {"admin_id": None, "admin_name": None}, changes=changes)
    return updated


def delete_request(
    db: Session,
    request_id: str,
    actor: Actor,
    payload: Optional[Mapping[str, Any]] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
) -> DeleteResult:
    """Permanently remove a request; the audit entry keeps the full prior record."""
    store = RequestStore(db)
    req, rule = _load(store, request_id, WorkflowAction.delete, actor)
    reason = _parse(DeletePayload, payload, "Invalid delete reason").reason

    from_status = RequestStatus(req.status)
    snapshot = request_snapshot(req)
    creator_id, admin_id, title = req.creator_id, req.admin_id, req.title
    reason = reason or "No reason provided"
    changes = {
        "status": status_change(from_status, RequestStatus.deleted),
        "deleted": True,
        "deleted_request": snapshot,
        "deleted_at": json_safe(_now()),
    }
    try:
        store.delete(request_id, from_status, req.version)
        entry: AuditLogEntry = store.write_audit(
            build_entry(actor, rule.audit_action, request_id, changes, reason)
        )
        audit_id = entry.audit_id
        db.commit()
    except ConflictError:
        db.rollback()
        _resolve_conflict(store, request_id, rule.action.value, from_status)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to delete request %s for user %s", request_id, actor.user_id)
        raise InternalError() from exc

    logger.info("User %s permanently deleted request %s (was %s)", actor.user_id, request_id, from_status.value)
    messages = [NotificationMessage(
        title="Request Deleted",
        message=f"Your event request '{title}' was permanently deleted. Reason: {reason}",
        type=NotificationType.warning,
        resource_type=RESOURCE_EVENT_REQUEST,
        resource_id=request_id,
        user_id=creator_id,
    )]
    if admin_id:
        messages.append(NotificationMessage(
            title="Request Deleted",
            message=f"The event request '{title}' you reviewed was permanently deleted. Reason: {reason}",
            type=NotificationType.warning,
            resource_type=RESOURCE_EVENT_REQUEST,
            resource_id=request_id,
            user_id=admin_id,
        ))
    _notify(db, dispatcher, messages)
    return DeleteResult(request_id=request_id, audit_id=audit_id)
