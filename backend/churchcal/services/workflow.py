"""Request approval state machine.

One table lists every legal (action, role, current status) combination. ``authorize``
is the only permission check the request service uses:

1. role      : no row for (action, role)            -> ForbiddenError
2. status    : current status not a legal source     -> InvalidStateTransitionError
3. ownership : creator/claimant/department mismatch  -> ForbiddenError

Anything not in the table is rejected.
"""
import enum
from dataclasses import dataclass
from typing import Optional

from churchcal.config import settings
from churchcal.errors import ForbiddenError, InvalidStateTransitionError, WorkflowError
from churchcal.models.audit_log import AuditAction
from churchcal.models.event_request import EventRequest, RequestStatus
from churchcal.models.user import UserRole
from churchcal.services.identity import Actor
from churchcal.services.request_store import RequestScope


class WorkflowAction(str, enum.Enum):
    update = "update"
    submit = "submit"
    resubmit = "resubmit"
    claim = "claim"
    forward = "forward"
    approve = "approve"
    return_ = "return"
    withdraw = "withdraw"
    delete = "delete"


class Ownership(str, enum.Enum):
    creator = "creator"
    claimant = "claimant"


@dataclass(frozen=True)
class Transition:
    action: WorkflowAction
    role: UserRole
    sources: frozenset[RequestStatus]
    target: Optional[RequestStatus]  # None keeps the current status
    audit_action: AuditAction
    ownership: Optional[Ownership] = None


def _s(*statuses: RequestStatus) -> frozenset[RequestStatus]:
    return frozenset(statuses)


STORED_STATUSES = frozenset(s for s in RequestStatus if s is not RequestStatus.deleted)

# Statuses an admin can see; edit rights are narrower (see TRANSITIONS).
ADMIN_VISIBLE_STATUSES = _s(
    RequestStatus.submitted, RequestStatus.under_review, RequestStatus.ready_for_approval,
)

TRANSITIONS: tuple[Transition, ...] = (
    Transition(WorkflowAction.update, UserRole.lead,
               _s(RequestStatus.draft, RequestStatus.returned, RequestStatus.withdrawn),
               None, AuditAction.update_request, Ownership.creator),
    Transition(WorkflowAction.update, UserRole.admin,
               _s(RequestStatus.submitted, RequestStatus.under_review),
               None, AuditAction.update_request),
    Transition(WorkflowAction.update, UserRole.superadmin,
               _s(RequestStatus.ready_for_approval),
               None, AuditAction.update_request),
    Transition(WorkflowAction.submit, UserRole.lead,
               _s(RequestStatus.draft),
               RequestStatus.submitted, AuditAction.submit_request, Ownership.creator),
    Transition(WorkflowAction.resubmit, UserRole.lead,
               _s(RequestStatus.returned, RequestStatus.withdrawn),
               RequestStatus.submitted, AuditAction.resubmit_request, Ownership.creator),
    Transition(WorkflowAction.claim, UserRole.admin,
               _s(RequestStatus.submitted),
               RequestStatus.under_review, AuditAction.claim_request),
    Transition(WorkflowAction.forward, UserRole.admin,
               _s(RequestStatus.under_review),
               RequestStatus.ready_for_approval, AuditAction.forward_request, Ownership.claimant),
    Transition(WorkflowAction.approve, UserRole.superadmin,
               _s(RequestStatus.ready_for_approval),
               RequestStatus.approved, AuditAction.approve_request),
    Transition(WorkflowAction.return_, UserRole.admin,
               _s(RequestStatus.under_review),
               RequestStatus.returned, AuditAction.return_request),
    Transition(WorkflowAction.return_, UserRole.superadmin,
               _s(RequestStatus.ready_for_approval),
               RequestStatus.under_review, AuditAction.return_request),
    Transition(WorkflowAction.withdraw, UserRole.lead,
               _s(RequestStatus.submitted, RequestStatus.under_review),
               RequestStatus.withdrawn, AuditAction.withdraw_request, Ownership.creator),
    Transition(WorkflowAction.delete, UserRole.superadmin,
               STORED_STATUSES,
               RequestStatus.deleted, AuditAction.delete_request),
)


def _admin_out_of_department(actor: Actor, req: EventRequest) -> bool:
    return (
        actor.role == UserRole.admin
        and settings.ADMIN_DEPARTMENT_SCOPED
        and actor.department_id != req.department_id
    )


def require_role(action: WorkflowAction, actor: Actor) -> list[Transition]:
    """Rows of the table open to the actor's role for ``action``."""
    rows = [t for t in TRANSITIONS if t.action == action and t.role == actor.role]
    if not rows:
        raise ForbiddenError(f"Role '{actor.role.value}' may not {action.value} requests")
    return rows


def authorize(action: WorkflowAction, actor: Actor, req: EventRequest) -> Transition:
    """Return the transition ``actor`` may apply to ``req`` or raise why not."""
    rows = require_role(action, actor)

    rule = next((t for t in rows if req.status in t.sources), None)
    if rule is None:
        raise InvalidStateTransitionError(action.value, RequestStatus(req.status).value)

    if rule.ownership == Ownership.creator and req.creator_id != actor.user_id:
        raise ForbiddenError(f"You can only {action.value} your own requests")
    if rule.ownership == Ownership.claimant and req.admin_id != actor.user_id:
        raise ForbiddenError(f"You can only {action.value} requests assigned to you")
    if _admin_out_of_department(actor, req):
        raise ForbiddenError("Request belongs to another department")
    return rule


def allowed_actions(actor: Actor, req: EventRequest) -> list[str]:
    """Every action ``actor`` could perform on ``req`` right now."""
    allowed = []
    for action in WorkflowAction:
        try:
            authorize(action, actor, req)
        except WorkflowError:
            continue
        allowed.append(action.value)
    return allowed


def list_scope(actor: Actor) -> RequestScope:
    """Role-determined base set for listing requests."""
    if actor.role == UserRole.lead:
        return RequestScope(creator_id=actor.user_id)
    if actor.role == UserRole.admin:
        department = (actor.department_id or "") if settings.ADMIN_DEPARTMENT_SCOPED else None
        return RequestScope(statuses=ADMIN_VISIBLE_STATUSES, department_id=department)
    if actor.role == UserRole.superadmin:
        return RequestScope()
    raise ForbiddenError("You do not have permission to view requests")


def ensure_can_view(actor: Actor, req: EventRequest) -> None:
    """Apply the listing scope to a single request."""
    scope = list_scope(actor)
    if scope.creator_id is not None and req.creator_id != scope.creator_id:
        raise ForbiddenError("You do not have permission to view this request")
    if scope.statuses is not None and req.status not in scope.statuses:
        raise ForbiddenError("You do not have permission to view this request")
    if scope.department_id is not None and req.department_id != scope.department_id:
        raise ForbiddenError("You do not have permission to view this request")
