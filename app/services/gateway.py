"""Remote gateway to the ATS backend.

Translates the portal's domain operations into HTTP calls with ``httpx`` and
the backend's wire shapes into ``Candidate`` / ``TimelineEvent`` models.

Every call ends in one of three ways:

* success -- a typed payload, or ``None`` for an empty / 204 body;
* ``DomainError`` -- the backend answered with a readable error body;
* ``TransportError`` -- network failure, 5xx, or a body that is unreadable
  or has the wrong shape.

A 401 on an authenticated call raises ``SessionError`` instead, so the
session can be ended with the right explanation.

Mutations are performed as "update the application status, then persist
the detail on the candidate record", followed by a re-fetch.  The returned
candidate is always a backend read, never assembled from the request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from app.core.errors import (
    DomainError,
    InvalidCredentialsError,
    SessionError,
    TransportError,
)
from app.models.actions import (
    FeedbackRequest,
    LeftCompanyRequest,
    RejectRequest,
    ScheduleInterviewRequest,
)
from app.models.candidate import BackendApplication, BackendCandidate, Candidate
from app.models.enums import (
    BackendApplicationStatus,
    BackendCandidateStatus,
    ClientAction,
    SessionErrorKind,
)
from app.models.session import Identity, LoginCredentials, LoginResponse
from app.models.timeline import TimelineEvent
from app.services.state_model import backend_status_for, resolve_state
from app.services.timeline import synthesize_timeline

logger = logging.getLogger(__name__)

TokenProvider = Callable[[], str | None]

ModelT = TypeVar("ModelT", bound=BaseModel)

_STATUS_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
}


class CandidateGateway(Protocol):
    """Interface shared by the HTTP gateway and the demo fixtures."""

    async def login(self, credentials: LoginCredentials) -> LoginResponse: ...

    async def validate_session(self, token: str | None = None) -> Identity: ...

    async def fetch_candidates(self) -> list[Candidate]: ...

    async def fetch_candidate(self, candidate_id: str) -> Candidate: ...

    async def fetch_timeline(self, candidate_id: str) -> list[TimelineEvent]: ...

    async def fetch_applications(
        self,
        status: str | None = None,
        flagged_only: bool = False,
        include_deleted: bool = False,
    ) -> list[BackendApplication]: ...

    async def schedule_interview(
        self, candidate_id: str, request: ScheduleInterviewRequest
    ) -> Candidate: ...

    async def submit_feedback(self, candidate_id: str, request: FeedbackRequest) -> Candidate: ...

    async def select(self, candidate_id: str) -> Candidate: ...

    async def reject(self, candidate_id: str, request: RejectRequest) -> Candidate: ...

    async def mark_left_company(
        self, candidate_id: str, request: LeftCompanyRequest
    ) -> Candidate: ...

    async def fetch_candidate_stats(self) -> dict[str, Any]: ...

    async def fetch_application_stats(self) -> dict[str, Any]: ...

    async def aclose(self) -> None: ...


# ---------------------------------------------------------------------------
# Backend -> domain mappers
# ---------------------------------------------------------------------------

def _normalize_skills(raw: list[str] | dict[str, Any] | None) -> list[str]:
    """Skills arrive as a list, ``{"skills": [...]}``, or a dict keyed by skill."""
    if not raw:
        return []
    if isinstance(raw, list):
        return [str(skill) for skill in raw]
    nested = raw.get("skills")
    if isinstance(nested, list):
        return [str(skill) for skill in nested]
    return list(raw.keys())


def _experience_summary(raw: str | dict[str, Any] | None) -> str:
    if not raw:
        return ""
    if isinstance(raw, str):
        return raw
    if raw.get("summary"):
        return str(raw["summary"])
    if raw.get("years"):
        return f"{raw['years']} years of experience"
    return ""


def to_candidate(
    backend: BackendCandidate, application: BackendApplication | None = None
) -> Candidate:
    """Map a backend candidate (and its current application) to a ``Candidate``."""
    return Candidate(
        id=backend.id,
        application_id=application.id if application else "",
        name=backend.name,
        email=backend.email,
        phone=backend.phone,
        location=backend.location,
        current_state=resolve_state(
            backend.status, application.status if application else None
        ),
        skills=_normalize_skills(backend.skills),
        experience_summary=_experience_summary(backend.experience),
        ctc_current=backend.ctc_current,
        ctc_expected=backend.ctc_expected,
        remark=backend.remark,
        created_at=backend.created_at,
        updated_at=backend.updated_at,
    )


def _validated(model: type[ModelT], data: Any, path: str) -> ModelT:
    """Validate a 2xx payload; a body of the wrong shape is a transport failure."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "gateway_malformed_response",
            extra={"path": path, "model": model.__name__, "error_count": exc.error_count()},
        )
        raise TransportError(f"Malformed response from {path}") from exc


def _validated_list(model: type[ModelT], data: Any, path: str) -> list[ModelT]:
    if data is None:
        return []
    if not isinstance(data, list):
        logger.warning("gateway_malformed_response", extra={"path": path, "model": model.__name__})
        raise TransportError(f"Malformed response from {path}")
    return [_validated(model, item, path) for item in data]


def _validated_dict(data: Any, path: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning("gateway_malformed_response", extra={"path": path})
        raise TransportError(f"Malformed response from {path}")
    return data


def _session_error_kind(body: Any) -> SessionErrorKind:
    text = str(body).lower()
    if "expired" in text:
        return SessionErrorKind.expired
    if "revoked" in text:
        return SessionErrorKind.revoked
    return SessionErrorKind.invalid


# ---------------------------------------------------------------------------
# HTTP gateway
# ---------------------------------------------------------------------------

class RemoteGateway:
    """``CandidateGateway`` backed by the real backend over HTTP."""

    def __init__(
        self,
        base_url: str,
        token_provider: TokenProvider,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._token_provider = token_provider
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    # -- plumbing ----------------------------------------------------------

    def _auth_headers(self, token: str | None = None) -> dict[str, str]:
        token = token or self._token_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    def _error_from(self, response: httpx.Response) -> Exception:
        status = response.status_code
        try:
            body = response.json()
        except ValueError:
            body = None

        if status == 401:
            return SessionError(_session_error_kind(body).value)

        if status in (404, 405) and not isinstance(body, dict):
            return DomainError(_STATUS_CODES[status], "Resource not found", status_code=status)
        if status >= 500 or not isinstance(body, dict):
            return TransportError(f"HTTP {status} from {response.request.url.path}")

        detail = body.get("detail")
        message = body.get("message") or (detail if isinstance(detail, str) else None)
        if not message:
            return TransportError(f"HTTP {status} without error message")
        code = body.get("code") or _STATUS_CODES.get(status, f"HTTP_{status}")
        return DomainError(str(code), str(message), status_code=status)

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        token: str | None = None,
    ) -> Any:
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._auth_headers(token),
            )
        except httpx.HTTPError as exc:
            logger.error(
                "gateway_transport_failed",
                extra={"method": method, "path": path, "error_message": str(exc)},
            )
            raise TransportError(str(exc)) from exc

        if response.is_error:
            error = self._error_from(response)
            logger.warning(
                "gateway_request_failed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error_type": type(error).__name__,
                },
            )
            raise error

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"Malformed JSON from {path}") from exc

    # -- authentication ----------------------------------------------------

    async def login(self, credentials: LoginCredentials) -> LoginResponse:
        """Exchange email/password for a bearer token.

        The backend's OAuth2 password flow expects a form-encoded body, not
        JSON.
        """
        try:
            response = await self._client.post(
                "/auth/login",
                data={"username": credentials.username, "password": credentials.password},
            )
        except httpx.HTTPError as exc:
            logger.error("login_transport_failed", extra={"error_message": str(exc)})
            raise TransportError(str(exc)) from exc

        if response.status_code >= 500:
            raise TransportError(f"HTTP {response.status_code} from /auth/login")
        if response.is_error:
            try:
                body = response.json()
            except ValueError:
                body = {}
            detail = body.get("detail") if isinstance(body, dict) else None
            message = (body.get("message") if isinstance(body, dict) else None) or detail
            if isinstance(message, str) and message:
                raise InvalidCredentialsError(message)
            raise InvalidCredentialsError()

        try:
            return LoginResponse.model_validate(response.json())
        except ValueError as exc:
            raise TransportError("Malformed login response") from exc

    async def validate_session(self, token: str | None = None) -> Identity:
        """Return the identity behind *token* (or the current token)."""
        data = await self._request("GET", "/auth/me", token=token)
        return _validated(Identity, data, "/auth/me")

    # -- reads -------------------------------------------------------------

    async def fetch_applications(
        self,
        status: str | None = None,
        flagged_only: bool = False,
        include_deleted: bool = False,
    ) -> list[BackendApplication]:
        params: dict[str, Any] = {}
        if status:
            params["application_status"] = status
        if flagged_only:
            params["flagged_only"] = "true"
        if include_deleted:
            params["include_deleted"] = "true"
        data = await self._request("GET", "/applications/", params=params or None)
        return _validated_list(BackendApplication, data, "/applications/")

    async def fetch_candidates(self) -> list[Candidate]:
        """Return the distinct candidates embedded in the application list."""
        applications = await self.fetch_applications()
        candidates: list[Candidate] = []
        seen: set[str] = set()
        for application in applications:
            if application.candidate is None or application.candidate.id in seen:
                continue
            seen.add(application.candidate.id)
            candidates.append(to_candidate(application.candidate, application))
        return candidates

    async def _applications_for(self, candidate_id: str) -> list[BackendApplication]:
        path = f"/applications/candidate/{candidate_id}"
        return _validated_list(BackendApplication, await self._request("GET", path), path)

    async def fetch_candidate(self, candidate_id: str) -> Candidate:
        path = f"/candidates/{candidate_id}"
        backend = _validated(BackendCandidate, await self._request("GET", path), path)
        applications = await self._applications_for(candidate_id)
        return to_candidate(backend, applications[0] if applications else None)

    async def fetch_timeline(self, candidate_id: str) -> list[TimelineEvent]:
        """Return the candidate's timeline.

        Falls back to a timeline synthesized from application history when
        the backend has no timeline endpoint.
        """
        path = f"/candidates/{candidate_id}/timeline"
        try:
            data = await self._request("GET", path)
        except DomainError as exc:
            if exc.status_code not in (404, 405):
                raise
            logger.info(
                "timeline_endpoint_unavailable",
                extra={"candidate_id": candidate_id, "status_code": exc.status_code},
            )
            return synthesize_timeline(candidate_id, await self._applications_for(candidate_id))
        events = _validated_list(TimelineEvent, data, path)
        return sorted(events, key=lambda event: event.timestamp)

    async def fetch_candidate_stats(self) -> dict[str, Any]:
        path = "/candidates/stats/summary"
        return _validated_dict(await self._request("GET", path), path)

    async def fetch_application_stats(self) -> dict[str, Any]:
        path = "/applications/stats/summary"
        return _validated_dict(await self._request("GET", path), path)

    # -- writes ------------------------------------------------------------

    async def update_application_status(
        self,
        application_id: str,
        new_status: BackendApplicationStatus,
        force_update: bool = False,
    ) -> BackendApplication | None:
        """Move an application to *new_status*.

        Client actions never pass ``force_update``: they only request moves the
        state model allows, so the backend's transition check must stay on.
        The flag is kept for operator corrections that skip that check.
        """
        params: dict[str, Any] = {"new_status": new_status.value}
        if force_update:
            params["force_update"] = "true"
        path = f"/applications/{application_id}/status"
        data = await self._request("PUT", path, params=params)
        logger.info(
            "application_status_updated",
            extra={"application_id": application_id, "new_status": new_status.value},
        )
        return _validated(BackendApplication, data, path) if data else None

    async def _require_application(self, candidate_id: str) -> str:
        candidate = await self.fetch_candidate(candidate_id)
        if not candidate.application_id:
            raise DomainError(
                "NO_APPLICATION", "Candidate has no active application", status_code=409
            )
        return candidate.application_id

    async def _update_candidate(self, candidate_id: str, body: dict[str, Any]) -> None:
        await self._request("PUT", f"/candidates/{candidate_id}", json=body)

    async def _write_detail(self, candidate_id: str, body: dict[str, Any]) -> bool:
        """Best-effort detail write; the state change already landed."""
        try:
            await self._update_candidate(candidate_id, body)
        except (DomainError, TransportError) as exc:
            logger.warning(
                "candidate_detail_write_failed",
                extra={"candidate_id": candidate_id, "error_message": str(exc)},
            )
            return False
        return True

    async def _transition(self, candidate_id: str, action: ClientAction) -> None:
        application_id = await self._require_application(candidate_id)
        await self.update_application_status(application_id, backend_status_for(action))

    async def schedule_interview(
        self, candidate_id: str, request: ScheduleInterviewRequest
    ) -> Candidate:
        await self._transition(candidate_id, ClientAction.SCHEDULE_INTERVIEW)

        remark = (
            f"Round {request.round_number} interview scheduled "
            f"({request.mode.value}) for {request.scheduled_date.isoformat()}"
        )
        if request.interviewer_name:
            remark += f" with {request.interviewer_name}"
        if request.notes:
            remark += f": {request.notes}"
        await self._write_detail(candidate_id, {"remark": remark})

        return await self.fetch_candidate(candidate_id)

    async def submit_feedback(self, candidate_id: str, request: FeedbackRequest) -> Candidate:
        # No dedicated feedback endpoint: the remark field is the only store.
        await self.fetch_candidate(candidate_id)
        await self._update_candidate(
            candidate_id,
            {
                "remark": (
                    f"Round {request.round_number} Feedback "
                    f"({request.recommendation.value}, {request.rating}/5): {request.feedback}"
                )
            },
        )
        return await self.fetch_candidate(candidate_id)

    async def select(self, candidate_id: str) -> Candidate:
        await self._transition(candidate_id, ClientAction.SELECT)
        return await self.fetch_candidate(candidate_id)

    async def reject(self, candidate_id: str, request: RejectRequest) -> Candidate:
        await self._transition(candidate_id, ClientAction.REJECT)
        await self._write_detail(
            candidate_id,
            {
                "remark": f"Rejected: {request.reason.value} - {request.feedback}",
                "status": BackendCandidateStatus.REJECTED.value,
            },
        )
        return await self.fetch_candidate(candidate_id)

    async def mark_left_company(
        self, candidate_id: str, request: LeftCompanyRequest
    ) -> Candidate:
        # Departure lives on the candidate record; the application stays HIRED.
        remark = f"Left company: {request.reason.value} - {request.feedback}"
        if request.last_working_date:
            remark += f" (Last day: {request.last_working_date.isoformat()})"
        await self._update_candidate(
            candidate_id,
            {"status": BackendCandidateStatus.LEFT.value, "remark": remark},
        )
        return await self.fetch_candidate(candidate_id)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
