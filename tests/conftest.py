"""Shared test fixtures.

Provides a stateful fake backend served through ``httpx.MockTransport``, a
``RemoteGateway`` wired to it, candidate factories, and a ``TestClient`` for
a demo-mode portal.
"""

from __future__ import annotations

import json
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import MagicMock
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

BACKEND_URL = "http://backend.test"
VALID_TOKEN = "good-token"
CREATED_AT = datetime(2024, 12, 20, 10, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------

class FakeBackend:
    """In-memory stand-in for the ATS backend's HTTP API.

    Records every request.  ``fail(method, path, status, body)`` makes a
    route answer with an error until ``clear_failures()`` is called.
    """

    def __init__(self) -> None:
        self.candidates: dict[str, dict[str, Any]] = {}
        self.applications: dict[str, dict[str, Any]] = {}
        self.requests: list[httpx.Request] = []
        self.failures: dict[tuple[str, str], httpx.Response] = {}
        self.timeline_supported = False
        self._clock = CREATED_AT

    # -- setup -------------------------------------------------------------

    def _tick(self) -> str:
        self._clock += timedelta(minutes=1)
        return self._clock.isoformat()

    def add_candidate(
        self,
        candidate_id: str,
        name: str,
        app_status: str | None = "RECEIVED",
        candidate_status: str = "ACTIVE",
        job_title: str | None = "Backend Engineer",
    ) -> None:
        self.candidates[candidate_id] = {
            "id": candidate_id,
            "client_id": "client-1",
            "name": name,
            "email": f"{name.split()[0].lower()}@example.com",
            "skills": {"skills": ["Python", "SQL"]},
            "experience": {"years": 4},
            "status": candidate_status,
            "remark": None,
            "created_at": CREATED_AT.isoformat(),
            "updated_at": CREATED_AT.isoformat(),
        }
        if app_status is not None:
            app_id = f"app-{candidate_id}"
            self.applications[app_id] = {
                "id": app_id,
                "candidate_id": candidate_id,
                "client_id": "client-1",
                "job_title": job_title,
                "status": app_status,
                "created_at": CREATED_AT.isoformat(),
                "updated_at": CREATED_AT.isoformat(),
            }

    def fail(
        self, method: str, path: str, status: int, body: Any = None, text: str | None = None
    ) -> None:
        if text is not None:
            response = httpx.Response(status, text=text)
        else:
            response = httpx.Response(status, json=body)
        self.failures[(method, path)] = response

    def clear_failures(self) -> None:
        self.failures.clear()

    def calls(self, method: str | None = None) -> list[httpx.Request]:
        return [r for r in self.requests if method is None or r.method == method]

    # -- dispatch ----------------------------------------------------------

    def _application_json(self, application: dict[str, Any]) -> dict[str, Any]:
        return {**application, "candidate": self.candidates[application["candidate_id"]]}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        method, path = request.method, request.url.path

        failure = self.failures.get((method, path))
        if failure is not None:
            return failure

        if path == "/auth/login" and method == "POST":
            form = parse_qs(request.content.decode())
            if form.get("username") == ["client@example.com"] and form.get("password") == ["secret"]:
                return httpx.Response(200, json={"access_token": VALID_TOKEN, "token_type": "bearer"})
            return httpx.Response(401, json={"detail": "Incorrect email or password"})

        if request.headers.get("Authorization") != f"Bearer {VALID_TOKEN}":
            return httpx.Response(401, json={"detail": "Could not validate credentials"})

        if path == "/auth/me":
            return httpx.Response(
                200,
                json={
                    "id": "user-1",
                    "email": "client@example.com",
                    "role": "client",
                    "client_id": "client-1",
                    "client_name": "Acme Corporation",
                },
            )

        if path == "/applications/" and method == "GET":
            status = request.url.params.get("application_status")
            apps = [
                self._application_json(a)
                for a in self.applications.values()
                if status is None or a["status"] == status
            ]
            return httpx.Response(200, json=apps)

        parts = path.strip("/").split("/")
        if parts[:2] == ["applications", "candidate"] and method == "GET":
            apps = [a for a in self.applications.values() if a["candidate_id"] == parts[2]]
            return httpx.Response(200, json=apps)

        if parts[0] == "applications" and parts[-1] == "status" and method == "PUT":
            application = self.applications.get(parts[1])
            if application is None:
                return httpx.Response(404, json={"detail": "Application not found"})
            application["status"] = request.url.params["new_status"]
            application["updated_at"] = self._tick()
            self.candidates[application["candidate_id"]]["updated_at"] = application["updated_at"]
            return httpx.Response(200, json=application)

        if parts[0] == "candidates" and len(parts) == 2:
            candidate = self.candidates.get(parts[1])
            if candidate is None:
                return httpx.Response(404, json={"detail": "Candidate not found"})
            if method == "GET":
                return httpx.Response(200, json=candidate)
            if method == "PUT":
                candidate.update(json.loads(request.content))
                candidate["updated_at"] = self._tick()
                return httpx.Response(200, json=candidate)

        if parts[0] == "candidates" and parts[-1] == "timeline" and self.timeline_supported:
            return httpx.Response(200, json=[])

        return httpx.Response(404, json={"detail": "Not Found"})


@pytest.fixture()
def backend() -> FakeBackend:
    """A fake backend with one TO_REVIEW and one JOINED candidate."""
    fake = FakeBackend()
    fake.add_candidate("c1", "Sarah Chen", app_status="RECEIVED")
    fake.add_candidate("c2", "David Liu", app_status="HIRED")
    return fake


@pytest.fixture()
def gateway(backend: FakeBackend) -> Any:
    """A ``RemoteGateway`` talking to ``backend`` with a valid token."""
    from app.services.gateway import RemoteGateway

    client = httpx.AsyncClient(transport=httpx.MockTransport(backend), base_url=BACKEND_URL)
    return RemoteGateway(BACKEND_URL, lambda: VALID_TOKEN, client=client)


# ---------------------------------------------------------------------------
# Candidate factories
# ---------------------------------------------------------------------------

def make_candidate(candidate_id: str = "c1", state: str = "TO_REVIEW", **overrides: Any) -> Any:
    """Build a ``Candidate`` with sensible defaults."""
    from app.models.candidate import Candidate

    fields: dict[str, Any] = {
        "id": candidate_id,
        "application_id": f"app-{candidate_id}",
        "name": "Sarah Chen",
        "current_state": state,
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
    }
    fields.update(overrides)
    return Candidate(**fields)


@pytest.fixture()
def candidate_factory() -> Any:
    return make_candidate


# ---------------------------------------------------------------------------
# Portal app
# ---------------------------------------------------------------------------

@pytest.fixture()
def demo_settings() -> Any:
    from app.core.config import Settings

    return Settings(DEMO_MODE=True, SSE_AUTOSTART=False, SESSION_TOKEN_FILE="")


@pytest.fixture()
def mock_scheduler() -> MagicMock:
    """Stand-in for the APScheduler instance so no real jobs run."""
    scheduler = MagicMock()
    scheduler.running = False
    return scheduler


@pytest.fixture()
def test_client(demo_settings: Any) -> Generator[TestClient, None, None]:
    """Provide a FastAPI TestClient for a demo-mode portal."""
    from app.main import create_app

    with TestClient(create_app(demo_settings)) as client:
        yield client


@pytest.fixture()
def authed_client(test_client: TestClient) -> TestClient:
    """TestClient already signed in with the demo credentials."""
    response = test_client.post(
        "/api/v1/session/login",
        json={"username": "demo@example.com", "password": "demo123"},
    )
    assert response.status_code == 200
    return test_client
