"""Endpoint tests against a demo-mode portal via FastAPI's TestClient."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient


class TestHealth:
    def test_health_ok(self, test_client: TestClient) -> None:
        response = test_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["demo_mode"] is True
        assert data["session"] == "anonymous"
        assert data["live_channel"] == "disconnected"
        assert data["expiry_check"] is False


class TestSessionEndpoints:
    def test_login_loads_candidates(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/session/login",
            json={"username": "demo@example.com", "password": "demo123"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "authenticated"
        assert response.json()["identity"]["client_name"] == "Acme Corporation"
        assert test_client.get("/health").json()["candidates"] == 7

    def test_bad_credentials(self, test_client: TestClient) -> None:
        response = test_client.post(
            "/api/v1/session/login",
            json={"username": "demo@example.com", "password": "wrong"},
        )

        assert response.status_code == 401
        assert response.json() == {
            "error": {"code": "INVALID_CREDENTIALS", "message": "Invalid email or password"}
        }

    def test_anonymous_caller_refused(self, test_client: TestClient) -> None:
        response = test_client.get("/api/v1/candidates")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "SESSION_INVALID"

    def test_validate_is_idempotent(self, authed_client: TestClient) -> None:
        first = authed_client.post("/api/v1/session/validate").json()
        second = authed_client.post("/api/v1/session/validate").json()

        assert first["valid"] and second["valid"]
        assert first["identity"] == second["identity"]

    def test_expiry_check_follows_session(self, authed_client: TestClient) -> None:
        assert authed_client.get("/health").json()["expiry_check"] is True

        authed_client.post("/api/v1/session/logout")

        assert authed_client.get("/health").json()["expiry_check"] is False

    def test_logout_clears_cache(self, authed_client: TestClient) -> None:
        response = authed_client.post("/api/v1/session/logout")

        assert response.json()["status"] == "anonymous"
        assert authed_client.get("/health").json()["candidates"] == 0
        assert authed_client.get("/api/v1/candidates").status_code == 401


class TestCandidateEndpoints:
    def test_list_and_filter(self, authed_client: TestClient) -> None:
        everyone = authed_client.get("/api/v1/candidates").json()
        joined = authed_client.get("/api/v1/candidates", params={"state": "JOINED"}).json()

        assert len(everyone) == 7
        assert [c["name"] for c in joined] == ["David Liu"]
        assert joined[0]["allowed_actions"] == ["MARK_LEFT_COMPANY"]

    def test_invalid_state_filter(self, authed_client: TestClient) -> None:
        response = authed_client.get("/api/v1/candidates", params={"state": "HIRED"})
        assert response.status_code == 422

    def test_summary(self, authed_client: TestClient) -> None:
        data = authed_client.get("/api/v1/candidates/summary").json()
        assert data["total"] == 7
        assert data["by_state"]["INTERVIEW_SCHEDULED"] == 2
        assert data["labels"]["LEFT_COMPANY"] == "Left Company"

    def test_stats(self, authed_client: TestClient) -> None:
        assert authed_client.get("/api/v1/candidates/stats").json()["total"] == 7
        assert authed_client.get("/api/v1/applications/stats").json()["total"] == 7

    def test_get_candidate_and_timeline(self, authed_client: TestClient) -> None:
        candidate = authed_client.get("/api/v1/candidates/5").json()
        timeline = authed_client.get("/api/v1/candidates/5/timeline").json()

        assert candidate["current_state"] == "SELECTED"
        assert candidate["allowed_actions"] == ["REJECT"]
        assert timeline[-1]["state"] == "SELECTED"

    def test_unknown_candidate(self, authed_client: TestClient) -> None:
        response = authed_client.get("/api/v1/candidates/404")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_applications_filter(self, authed_client: TestClient) -> None:
        data = authed_client.get("/api/v1/applications", params={"status": "OFFER_MADE"}).json()
        assert [a["candidate_id"] for a in data] == ["5"]


class TestActionEndpoints:
    def test_select(self, authed_client: TestClient) -> None:
        response = authed_client.post("/api/v1/candidates/1/actions/select")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["candidate"]["current_state"] == "SELECTED"
        assert body["message"] == "Sarah Chen has been marked as selected."

    def test_illegal_action_conflict(self, authed_client: TestClient) -> None:
        response = authed_client.post("/api/v1/candidates/5/actions/select")

        assert response.status_code == 409
        assert response.json()["code"] == "INVALID_ACTION"

    def test_reject_short_feedback(self, authed_client: TestClient) -> None:
        response = authed_client.post(
            "/api/v1/candidates/1/actions/reject",
            json={"reason": "skill_mismatch", "feedback": "short"},
        )

        assert response.status_code == 422
        assert response.json()["status"] == "validation_error"
        assert response.json()["dialog_open"] is True

    def test_schedule_interview(self, authed_client: TestClient) -> None:
        tomorrow = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        response = authed_client.post(
            "/api/v1/candidates/2/actions/schedule-interview",
            json={"scheduled_date": tomorrow, "mode": "phone", "interviewer_name": "Mike Chen"},
        )

        assert response.status_code == 200
        assert response.json()["candidate"]["current_state"] == "INTERVIEW_SCHEDULED"

    def test_mark_left_company(self, authed_client: TestClient) -> None:
        response = authed_client.post(
            "/api/v1/candidates/6/actions/mark-left-company",
            json={"reason": "resigned", "feedback": "Relocated abroad"},
        )

        assert response.status_code == 200
        assert response.json()["candidate"]["allowed_actions"] == []

    def test_feedback_and_schedule(self, authed_client: TestClient) -> None:
        tomorrow = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        response = authed_client.post(
            "/api/v1/candidates/3/actions/feedback-and-schedule",
            json={
                "feedback": {
                    "round_number": 2, "rating": 4, "recommendation": "yes",
                    "feedback": "Good system design",
                },
                "next_round": {"scheduled_date": tomorrow, "round_number": 3},
            },
        )

        assert response.status_code == 200
        assert response.json()["completed"] == ["SUBMIT_FEEDBACK", "SCHEDULE_INTERVIEW"]

    def test_feedback_missing_body(self, authed_client: TestClient) -> None:
        response = authed_client.post("/api/v1/candidates/3/actions/feedback")
        assert response.status_code == 422


class TestLiveEndpoints:
    def test_status(self, test_client: TestClient) -> None:
        data = test_client.get("/api/v1/live/status").json()

        assert data["enabled"] is False
        assert data["status"] == "disconnected"
        assert data["retries_exhausted"] is False

    def test_reconnect_disabled_in_demo_mode(self, authed_client: TestClient) -> None:
        response = authed_client.post("/api/v1/live/reconnect")

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "LIVE_UPDATES_DISABLED"
