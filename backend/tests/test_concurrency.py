"""Compare-and-swap behaviour when two callers race on the same request."""
import pytest
from sqlalchemy.exc import OperationalError

from churchcal.errors import ConflictError, InternalError, InvalidStateTransitionError
from churchcal.models.audit_log import AuditAction, AuditLogEntry
from churchcal.models.event_request import EventRequest, RequestStatus
from churchcal.models.published_event import PublishedEvent
from churchcal.services import request_service
from churchcal.services.request_store import RequestStore
from tests.conftest import actor_for, request_payload


def _submitted(db, people) -> EventRequest:
    lead = actor_for(people["lead"])
    req = request_service.create_request(db, lead, request_payload())
    return request_service.submit_request(db, req.request_id, lead)


class TestConcurrentClaims:
    """Exactly one of two overlapping claims wins."""

    def test_stale_claim_loses(self, db, session_factory, people):
        req = _submitted(db, people)
        request_id = req.request_id

        session_a, session_b = session_factory(), session_factory()
        try:
            # both admins read the request while it is still submitted
            assert session_a.get(EventRequest, request_id).status == RequestStatus.submitted
            assert session_b.get(EventRequest, request_id).status == RequestStatus.submitted

            winner = request_service.claim_request(session_a, request_id, actor_for(people["admin"]))
            assert winner.status == RequestStatus.under_review

            with pytest.raises(InvalidStateTransitionError) as exc_info:
                request_service.claim_request(session_b, request_id, actor_for(people["admin2"]))
            assert exc_info.value.current_status == "under_review"
        finally:
            session_a.close()
            session_b.close()

        db.expire_all()
        final = db.get(EventRequest, request_id)
        assert final.admin_id == people["admin"].user_id
        claims = db.query(AuditLogEntry).filter(
            AuditLogEntry.resource_id == request_id,
            AuditLogEntry.action == AuditAction.claim_request,
        ).all()
        assert len(claims) == 1

    def test_concurrent_edit_reports_conflict(self, db, session_factory, people):
        req = _submitted(db, people)
        request_id = req.request_id

        session_a, session_b = session_factory(), session_factory()
        try:
            stale = session_b.get(EventRequest, request_id)  # noqa: F841 -- keep the stale instance alive in the identity map
            request_service.update_request(
                session_a, request_id, actor_for(people["admin"]), {"location": "Main Sanctuary"},
            )

            # status is unchanged, only the version moved on
            with pytest.raises(ConflictError):
                request_service.claim_request(session_b, request_id, actor_for(people["admin2"]))
        finally:
            session_a.close()
            session_b.close()

        db.expire_all()
        final = db.get(EventRequest, request_id)
        assert final.status == RequestStatus.submitted
        assert final.admin_id is None


class TestRequestStore:
    """The conditional write itself."""

    def test_conditional_update_requires_expected_version(self, db, people):
        req = _submitted(db, people)
        store = RequestStore(db)
        with pytest.raises(ConflictError):
            store.conditional_update(req.request_id, RequestStatus.submitted, req.version - 1, {"location": "X"})
        db.rollback()

    def test_conditional_update_requires_expected_status(self, db, people):
        req = _submitted(db, people)
        store = RequestStore(db)
        with pytest.raises(ConflictError):
            store.conditional_update(req.request_id, RequestStatus.draft, req.version, {"location": "X"})
        db.rollback()

    def test_conditional_update_bumps_version(self, db, people):
        req = _submitted(db, people)
        store = RequestStore(db)
        updated = store.conditional_update(
            req.request_id, RequestStatus.submitted, req.version, {"location": "Chapel"},
        )
        db.commit()
        assert updated.version == 3
        assert updated.location == "Chapel"

    def test_stale_delete_rejected(self, db, people):
        req = _submitted(db, people)
        store = RequestStore(db)
        with pytest.raises(ConflictError):
            store.delete(req.request_id, RequestStatus.submitted, 1)
        db.rollback()
        assert store.find(req.request_id) is not None


def _failing_audit_write(self, entry):
    raise OperationalError("INSERT INTO audit_logs", {}, Exception("disk I/O error"))


class TestAtomicTransitions:
    """A failed audit write leaves the request exactly as it was."""

    def test_claim_rolled_back_when_audit_fails(self, db, people, monkeypatch):
        req = _submitted(db, people)
        request_id, version = req.request_id, req.version
        monkeypatch.setattr(RequestStore, "write_audit", _failing_audit_write)

        with pytest.raises(InternalError):
            request_service.claim_request(db, request_id, actor_for(people["admin"]))

        db.expire_all()
        final = db.get(EventRequest, request_id)
        assert final.status == RequestStatus.submitted
        assert final.admin_id is None
        assert final.reviewed_at is None
        assert final.version == version
        claims = db.query(AuditLogEntry).filter(AuditLogEntry.action == AuditAction.claim_request).count()
        assert claims == 0

    def test_approve_rolled_back_when_audit_fails(self, db, people, monkeypatch):
        req = _submitted(db, people)
        request_id = req.request_id
        admin = actor_for(people["admin"])
        request_service.claim_request(db, request_id, admin)
        request_service.forward_request(db, request_id, admin)
        monkeypatch.setattr(RequestStore, "write_audit", _failing_audit_write)

        with pytest.raises(InternalError):
            request_service.approve_request(db, request_id, actor_for(people["superadmin"]))

        db.expire_all()
        final = db.get(EventRequest, request_id)
        assert final.status == RequestStatus.ready_for_approval
        assert final.approved_by is None
        assert final.approved_at is None
        assert db.query(PublishedEvent).count() == 0
