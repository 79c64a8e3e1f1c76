"""Tests for request creation, editing, validation and role-scoped reads."""
from datetime import timedelta

from churchcal.services.calendar_service import today_local
from tests.conftest import auth, advance, create_test_request, request_payload


def _error(resp) -> dict:
    return resp.json()["error"]


class TestCreateRequest:
    """Lead creates a draft request."""

    def test_create_request(self, client, people):
        lead = people["lead"]
        data = create_test_request(client, lead)
        assert data["status"] == "draft"
        assert data["creator_id"] == lead.user_id
        assert data["creator_name"] == "Sarah Lead"
        assert data["request_number"] == "REQ-001"
        assert data["version"] == 1
        assert data["admin_id"] is None
        assert data["submitted_at"] is None

    def test_request_numbers_are_sequential(self, client, people):
        first = create_test_request(client, people["lead"])
        second = create_test_request(client, people["lead"], title="Second Event")
        assert first["request_number"] == "REQ-001"
        assert second["request_number"] == "REQ-002"

    def test_time_is_zero_padded(self, client, people):
        data = create_test_request(client, people["lead"], start_time="9:30", end_time="11:00")
        assert data["start_time"] == "09:30"

    def test_non_lead_cannot_create(self, client, people):
        for role in ("admin", "superadmin", "member"):
            resp = client.post("/api/requests/", json=request_payload(), headers=auth(people[role]))
            assert resp.status_code == 403, role
            assert _error(resp)["code"] == "forbidden"

    def test_role_check_runs_before_validation(self, client, people):
        resp = client.post("/api/requests/", json={"title": ""}, headers=auth(people["admin"]))
        assert resp.status_code == 403

    def test_missing_identity_is_401(self, client, people):
        resp = client.post("/api/requests/", json=request_payload())
        assert resp.status_code == 401
        assert _error(resp)["code"] == "unauthenticated"

    def test_unknown_identity_is_401(self, client, people):
        resp = client.get("/api/requests/", headers={"X-User-Id": "nobody"})
        assert resp.status_code == 401


class TestCreateValidation:
    """Invalid payloads are rejected with field-level errors and nothing is written."""

    def test_missing_required_fields(self, client, people):
        resp = client.post("/api/requests/", json={"title": "Only a title"}, headers=auth(people["lead"]))
        assert resp.status_code == 400
        err = _error(resp)
        assert err["code"] == "validation_error"
        fields = {d["field"] for d in err["details"]}
        assert {"event_type", "event_date", "start_time", "end_time", "location"} <= fields

        listing = client.get("/api/requests/", headers=auth(people["lead"]))
        assert listing.json() == []

    def test_invalid_time_format(self, client, people):
        resp = client.post(
            "/api/requests/", json=request_payload(start_time="25:00"), headers=auth(people["lead"]),
        )
        assert resp.status_code == 400
        assert any(d["field"] == "start_time" for d in _error(resp)["details"])

    def test_end_before_start(self, client, people):
        resp = client.post(
            "/api/requests/", json=request_payload(start_time="20:00", end_time="19:00"),
            headers=auth(people["lead"]),
        )
        assert resp.status_code == 400
        assert _error(resp)["details"][0]["field"] == "end_time"

    def test_past_date_rejected(self, client, people):
        past = (today_local() - timedelta(days=1)).isoformat()
        resp = client.post("/api/requests/", json=request_payload(event_date=past), headers=auth(people["lead"]))
        assert resp.status_code == 400
        assert _error(resp)["details"][0]["field"] == "event_date"

    def test_unknown_department(self, client, people):
        resp = client.post(
            "/api/requests/", json=request_payload(department_id="dept-nowhere"), headers=auth(people["lead"]),
        )
        assert resp.status_code == 400
        assert _error(resp)["details"][0]["field"] == "department_id"

    def test_unknown_event_type(self, client, people):
        resp = client.post(
            "/api/requests/", json=request_payload(event_type="weekly"), headers=auth(people["lead"]),
        )
        assert resp.status_code == 400

    def test_protected_fields_rejected(self, client, people):
        resp = client.post(
            "/api/requests/", json=request_payload(status="approved", approved_by="someone"),
            headers=auth(people["lead"]),
        )
        assert resp.status_code == 400
        fields = {d["field"] for d in _error(resp)["details"]}
        assert fields == {"status", "approved_by"}

    def test_unknown_fields_rejected(self, client, people):
        resp = client.post("/api/requests/", json=request_payload(color="red"), headers=auth(people["lead"]))
        assert resp.status_code == 400


class TestUpdateRequest:
    """Who may edit depends on role and status."""

    def test_lead_updates_draft(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}",
            json={"title": "Youth Movie Night", "expected_attendance": 55},
            headers=auth(people["lead"]),
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["title"] == "Youth Movie Night"
        assert data["expected_attendance"] == 55
        assert data["status"] == "draft"
        assert data["version"] == 2

    def test_update_audits_field_diff(self, client, people):
        req = create_test_request(client, people["lead"])
        client.patch(
            f"/api/requests/{req['request_id']}", json={"location": "Gym"}, headers=auth(people["lead"]),
        )
        detail = client.get(f"/api/requests/{req['request_id']}", headers=auth(people["lead"])).json()
        latest = detail["audit_logs"][0]
        assert latest["action"] == "update_request"
        assert latest["changes"] == {"location": {"from": "Fellowship Hall", "to": "Gym"}}

    def test_other_lead_cannot_update(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"title": "Hijacked"}, headers=auth(people["lead2"]),
        )
        assert resp.status_code == 403

    def test_lead_cannot_update_after_submit(self, client, people):
        req = create_test_request(client, people["lead"])
        advance(client, req["request_id"], "submit", people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"title": "Too Late"}, headers=auth(people["lead"]),
        )
        assert resp.status_code == 400
        assert _error(resp)["code"] == "invalid_state_transition"

    def test_admin_updates_during_review(self, client, people):
        req = create_test_request(client, people["lead"])
        advance(client, req["request_id"], "submit", people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"location": "Main Sanctuary"}, headers=auth(people["admin"]),
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "submitted"

    def test_admin_cannot_update_draft(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"location": "Gym"}, headers=auth(people["admin"]),
        )
        assert resp.status_code == 400

    def test_status_not_settable_through_update(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"status": "approved"}, headers=auth(people["lead"]),
        )
        assert resp.status_code == 400
        assert _error(resp)["code"] == "validation_error"
        detail = client.get(f"/api/requests/{req['request_id']}", headers=auth(people["lead"])).json()
        assert detail["status"] == "draft"

    def test_empty_update_rejected(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(f"/api/requests/{req['request_id']}", json={}, headers=auth(people["lead"]))
        assert resp.status_code == 400

    def test_required_field_cannot_be_cleared(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"location": None}, headers=auth(people["lead"]),
        )
        assert resp.status_code == 400

    def test_update_respects_existing_times(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.patch(
            f"/api/requests/{req['request_id']}", json={"end_time": "17:00"}, headers=auth(people["lead"]),
        )
        assert resp.status_code == 400

    def test_update_unknown_request(self, client, people):
        resp = client.patch("/api/requests/missing", json={"title": "Nope"}, headers=auth(people["lead"]))
        assert resp.status_code == 404
        assert _error(resp)["code"] == "not_found"


class TestListAndDetail:
    """Role-scoped listing; filters only narrow."""

    def _setup(self, client, people):
        draft = create_test_request(client, people["lead"], title="Draft Event")
        submitted = create_test_request(client, people["lead"], title="Submitted Event")
        advance(client, submitted["request_id"], "submit", people["lead"])
        other = create_test_request(client, people["lead2"], title="Worship Night")
        advance(client, other["request_id"], "submit", people["lead2"])
        return draft, submitted, other

    def test_lead_sees_only_own(self, client, people):
        draft, submitted, other = self._setup(client, people)
        resp = client.get("/api/requests/", headers=auth(people["lead"]))
        ids = {r["request_id"] for r in resp.json()}
        assert ids == {draft["request_id"], submitted["request_id"]}

    def test_admin_sees_review_statuses_only(self, client, people):
        draft, submitted, other = self._setup(client, people)
        resp = client.get("/api/requests/", headers=auth(people["admin"]))
        ids = {r["request_id"] for r in resp.json()}
        assert ids == {submitted["request_id"], other["request_id"]}

    def test_superadmin_sees_all(self, client, people):
        self._setup(client, people)
        resp = client.get("/api/requests/", headers=auth(people["superadmin"]))
        assert len(resp.json()) == 3

    def test_member_is_forbidden(self, client, people):
        resp = client.get("/api/requests/", headers=auth(people["member"]))
        assert resp.status_code == 403

    def test_newest_first(self, client, people):
        draft, submitted, other = self._setup(client, people)
        resp = client.get("/api/requests/", headers=auth(people["superadmin"]))
        assert [r["request_id"] for r in resp.json()] == [
            other["request_id"], submitted["request_id"], draft["request_id"],
        ]

    def test_status_filter_intersects_scope(self, client, people):
        self._setup(client, people)
        resp = client.get("/api/requests/?status=draft", headers=auth(people["admin"]))
        assert resp.json() == []
        resp = client.get("/api/requests/?status=draft,submitted", headers=auth(people["lead"]))
        assert len(resp.json()) == 2

    def test_department_filter(self, client, people):
        _, _, other = self._setup(client, people)
        resp = client.get("/api/requests/?department=dept-worship", headers=auth(people["admin"]))
        assert [r["request_id"] for r in resp.json()] == [other["request_id"]]

    def test_unknown_status_filter(self, client, people):
        resp = client.get("/api/requests/?status=bogus", headers=auth(people["superadmin"]))
        assert resp.status_code == 400

    def test_detail_includes_audit_and_actions(self, client, people):
        req = create_test_request(client, people["lead"])
        resp = client.get(f"/api/requests/{req['request_id']}", headers=auth(people["lead"]))
        assert resp.status_code == 200
        data = resp.json()
        assert len(data["audit_logs"]) == 1
        assert data["audit_logs"][0]["action"] == "create_request"
        assert data["audit_logs"][0]["changes"]["status"] == {"from": None, "to": "draft"}
        assert set(data["allowed_actions"]) == {"update", "submit"}

    def test_detail_out_of_scope(self, client, people):
        req = create_test_request(client, people["lead"])
        assert client.get(f"/api/requests/{req['request_id']}", headers=auth(people["lead2"])).status_code == 403
        assert client.get(f"/api/requests/{req['request_id']}", headers=auth(people["admin"])).status_code == 403

    def test_detail_not_found(self, client, people):
        resp = client.get("/api/requests/does-not-exist", headers=auth(people["superadmin"]))
        assert resp.status_code == 404
