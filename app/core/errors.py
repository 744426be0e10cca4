"""Error taxonomy and the structured error envelope for API responses.

Four categories reach callers:

* ``ActionValidationError`` -- client-local, raised before any network call.
* ``DomainError`` -- a well-formed error reported by the backend.
* ``TransportError`` -- network failure or an unreadable response body.
* ``SessionError`` -- the credential is expired, invalid or revoked.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.constants import (
    GENERIC_ERROR_CODE,
    GENERIC_ERROR_MESSAGE,
    SESSION_ERROR_MESSAGES,
)


def build_error_payload(
    code: str, message: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    payload: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class PortalError(Exception):
    """Base class for every error the portal surfaces."""

    status_code: int = 500

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return build_error_payload(self.code, self.message)


class ActionValidationError(PortalError):
    """Input or state check failed locally; nothing was sent."""

    status_code = 422

    def __init__(self, message: str, code: str = "VALIDATION_ERROR") -> None:
        super().__init__(code, message)


class InvalidActionError(ActionValidationError):
    """The action is not applicable from the candidate's current state."""

    status_code = 409

    def __init__(self, action: str, state: str) -> None:
        super().__init__(
            f"Action {action} is not allowed for a candidate in state {state}",
            code="INVALID_ACTION",
        )
        self.action = action
        self.state = state


class ContractViolationError(PortalError):
    """A candidate snapshot breaks the allowed-actions invariant."""

    status_code = 502

    def __init__(self, message: str) -> None:
        super().__init__("CONTRACT_VIOLATION", message)


class DomainError(PortalError):
    """Backend-reported error with a code and a user-presentable message."""

    status_code = 400

    def __init__(self, code: str, message: str, status_code: int | None = None) -> None:
        super().__init__(code, message)
        if status_code is not None:
            self.status_code = status_code


class InvalidCredentialsError(DomainError):
    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__("INVALID_CREDENTIALS", message, status_code=401)


class TransportError(PortalError):
    """Network failure or malformed response.

    The raw cause is kept on ``detail`` for logging; the user-facing message
    is always the generic one.
    """

    status_code = 502

    def __init__(self, detail: str = "") -> None:
        super().__init__(GENERIC_ERROR_CODE, GENERIC_ERROR_MESSAGE)
        self.detail = detail


class SessionError(PortalError):
    status_code = 401

    def __init__(self, kind: str) -> None:
        message = SESSION_ERROR_MESSAGES.get(kind, SESSION_ERROR_MESSAGES["invalid"])
        super().__init__(f"SESSION_{kind.upper()}", message)
        self.kind = kind


async def portal_error_handler(_: Request, exc: PortalError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
