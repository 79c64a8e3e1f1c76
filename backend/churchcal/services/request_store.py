"""Persistence contract for event requests.

All state-changing writes are conditional: an UPDATE or DELETE keyed on the expected
status and version, so a precondition checked in Python and the write that depends on it
can never be separated by a concurrent transition. Zero affected rows means another
caller won and ``ConflictError`` is raised. Nothing here commits; the caller decides the
transaction boundary so the state change and its audit entry land together.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from churchcal.errors import ConflictError, NotFoundError
from churchcal.models.audit_log import AuditLogEntry
from churchcal.models.event_request import EventRequest, RequestStatus

logger = logging.getLogger(__name__)

MAX_NUMBER_ATTEMPTS = 5


@dataclass
class RequestScope:
    """Row filter for listing; every field narrows the result."""

    creator_id: Optional[str] = None
    statuses: Optional[frozenset[RequestStatus]] = None
    department_id: Optional[str] = None


def request_snapshot(req: EventRequest) -> dict[str, Any]:
    """Serialize a request to a JSON-safe dict for the audit trail."""
    def _iso(value):
        return value.isoformat() if value is not None else None

    return {
        "request_id": req.request_id,
        "request_number": req.request_number,
        "title": req.title,
        "event_type": req.event_type.value if req.event_type else None,
        "department_id": req.department_id,
        "creator_id": req.creator_id,
        "creator_name": req.creator_name,
        "admin_id": req.admin_id,
        "admin_name": req.admin_name,
        "approved_by": req.approved_by,
        "event_date": _iso(req.event_date),
        "start_time": req.start_time,
        "end_time": req.end_time,
        "location": req.location,
        "description": req.description,
        "expected_attendance": req.expected_attendance,
        "budget": req.budget,
        "special_requirements": req.special_requirements,
        "status": req.status.value if req.status else None,
        "last_feedback": req.last_feedback,
        "version": req.version,
        "created_at": _iso(req.created_at),
        "updated_at": _iso(req.updated_at),
        "submitted_at": _iso(req.submitted_at),
        "reviewed_at": _iso(req.reviewed_at),
        "approved_at": _iso(req.approved_at),
    }


class RequestStore:
    """SQLAlchemy-backed store for EventRequest and its audit trail."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: str) -> EventRequest:
        req = self.db.query(EventRequest).filter(EventRequest.request_id == request_id).first()
        if not req:
            raise NotFoundError("Request", request_id)
        return req

    def find(self, request_id: str) -> Optional[EventRequest]:
        return self.db.query(EventRequest).filter(EventRequest.request_id == request_id).first()

    def create(self, fields: dict[str, Any]) -> EventRequest:
        """Insert a request with the next ``REQ-NNN`` number.

        The number is max+1 under a unique constraint; a collision with a concurrent
        insert rolls back and retries. Call before anything else is pending in the session.
        """
        for attempt in range(1, MAX_NUMBER_ATTEMPTS + 1):
            sequence = (self.db.query(func.max(EventRequest.sequence)).scalar() or 0) + 1
            req = EventRequest(
                sequence=sequence,
                request_number=f"REQ-{sequence:03d}",
                version=1,
                **fields,
            )
            try:
                self.db.add(req)
                self.db.flush()
            except IntegrityError:
                self.db.rollback()
                logger.warning("Request number REQ-%03d taken, retrying (attempt %d)", sequence, attempt)
                continue
            return req
        raise ConflictError("new", RequestStatus.draft.value)

    def conditional_update(
        self,
        request_id: str,
        expected_status: RequestStatus,
        expected_version: int,
        patch: dict[str, Any],
    ) -> EventRequest:
        """Apply ``patch`` only if the row still has the expected status and version."""
        values = dict(patch)
        values["version"] = expected_version + 1
        stmt = (
            update(EventRequest)
            .where(
                EventRequest.request_id == request_id,
                EventRequest.status == expected_status,
                EventRequest.version == expected_version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount != 1:
            raise ConflictError(request_id, expected_status.value)
        req = self.get(request_id)
        self.db.refresh(req)
        return req

    def delete(self, request_id: str, expected_status: RequestStatus, expected_version: int) -> None:
        stmt = (
            delete(EventRequest)
            .where(
                EventRequest.request_id == request_id,
                EventRequest.status == expected_status,
                EventRequest.version == expected_version,
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount != 1:
            raise ConflictError(request_id, expected_status.value)

    def list(self, scope: RequestScope) -> list[EventRequest]:
        query = self.db.query(EventRequest)
        if scope.creator_id is not None:
            query = query.filter(EventRequest.creator_id == scope.creator_id)
        if scope.statuses is not None:
            query = query.filter(EventRequest.status.in_(list(scope.statuses)))
        if scope.department_id is not None:
            query = query.filter(EventRequest.department_id == scope.department_id)
        return query.order_by(EventRequest.created_at.desc(), EventRequest.sequence.desc()).all()

    def write_audit(self, entry: AuditLogEntry) -> AuditLogEntry:
        self.db.add(entry)
        self.db.flush()
        return entry

    def audit_trail(self, request_id: str) -> Iterable[AuditLogEntry]:
        return (
            self.db.query(AuditLogEntry)
            .filter(AuditLogEntry.resource_id == request_id)
            .order_by(AuditLogEntry.created_at.desc())
            .all()
        )
