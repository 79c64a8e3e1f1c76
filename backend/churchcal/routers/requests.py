"""Event request API routes: thin HTTP layer over request_service."""
import logging
from typing import Any, Optional
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.orm import Session

from churchcal.database import get_db
from churchcal.dependencies import get_current_actor, get_dispatcher
from churchcal.errors import RequestValidationError
from churchcal.models.event_request import RequestStatus
from churchcal.schemas.audit_log import AuditLogOut
from churchcal.schemas.event import PublishedEventOut
from churchcal.schemas.request import ApprovalOut, DeleteOut, RequestDetailOut, RequestOut
from churchcal.services import request_service
from churchcal.services.identity import Actor
from churchcal.services.notification_service import NotificationDispatcher

logger = logging.getLogger(__name__)
router = APIRouter()


def _parse_statuses(raw: Optional[str]) -> Optional[list[RequestStatus]]:
    if not raw:
        return None
    try:
        return [RequestStatus(part.strip()) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise RequestValidationError.for_field("status", f"Unknown status in '{raw}'")


@router.get("/", response_model=list[RequestOut])
def list_requests(
    status_filter: Optional[str] = Query(None, alias="status", description="Comma-separated statuses"),
    department: Optional[str] = Query(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """List requests visible to the caller's role, newest first."""
    return request_service.list_requests(
        db, actor, statuses=_parse_statuses(status_filter), department_id=department,
    )


@router.post("/", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def create_request(
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Create a draft event request (leads only)."""
    return request_service.create_request(db, actor, payload)


@router.get("/{request_id}", response_model=RequestDetailOut)
def get_request(request_id: str, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Fetch one request with its audit trail and the caller's next actions."""
    detail = request_service.get_request_detail(db, request_id, actor)
    base = RequestOut.model_validate(detail["request"]).model_dump()
    return RequestDetailOut(
        **base,
        audit_logs=[AuditLogOut.model_validate(entry) for entry in detail["audit_logs"]],
        allowed_actions=detail["allowed_actions"],
    )


@router.patch("/{request_id}", response_model=RequestOut)
def update_request(
    request_id: str,
    payload: dict[str, Any] = Body(...),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
):
    """Edit scheduling fields; who may edit depends on role and status."""
    return request_service.update_request(db, request_id, actor, payload)


@router.delete("/{request_id}", response_model=DeleteOut)
def delete_request(
    request_id: str,
    payload: Optional[dict[str, Any]] = Body(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Permanently delete a request (super admins only)."""
    result = request_service.delete_request(db, request_id, actor, payload, dispatcher=dispatcher)
    return DeleteOut(
        message="Request permanently deleted",
        deleted_id=result.request_id,
        audit_id=result.audit_id,
    )


@router.post("/{request_id}/submit", response_model=RequestOut)
def submit_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Lead submits a draft for review."""
    return request_service.submit_request(db, request_id, actor, dispatcher=dispatcher)


@router.post("/{request_id}/resubmit", response_model=RequestOut)
def resubmit_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Lead resubmits a returned or withdrawn request."""
    return request_service.resubmit_request(db, request_id, actor, dispatcher=dispatcher)


@router.post("/{request_id}/claim", response_model=RequestOut)
def claim_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Admin claims a submitted request for review."""
    return request_service.claim_request(db, request_id, actor, dispatcher=dispatcher)


@router.post("/{request_id}/forward", response_model=RequestOut)
def forward_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Claiming admin forwards the request to the super admins."""
    return request_service.forward_request(db, request_id, actor, dispatcher=dispatcher)


@router.post("/{request_id}/approve", response_model=ApprovalOut)
def approve_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Super admin approves and publishes to the public calendar."""
    req, event = request_service.approve_request(db, request_id, actor, dispatcher=dispatcher)
    return ApprovalOut(
        request=RequestOut.model_validate(req),
        published_event=PublishedEventOut.model_validate(event),
    )


@router.post("/{request_id}/return", response_model=RequestOut)
def return_request(
    request_id: str,
    payload: Optional[dict[str, Any]] = Body(None),
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """Return a request one step with feedback."""
    return request_service.return_request(db, request_id, actor, payload, dispatcher=dispatcher)


@router.post("/{request_id}/withdraw", response_model=RequestOut)
def withdraw_request(request_id: str, actor: Actor = Depends(get_current_actor), db: Session = Depends(get_db)):
    """Lead withdraws a request that is waiting for or under review."""
    return request_service.withdraw_request(db, request_id, actor)
