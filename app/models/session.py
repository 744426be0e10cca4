"""Pydantic models for authentication and the client session."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.enums import SessionErrorKind, SessionStatus


class LoginCredentials(BaseModel):
    """OAuth2 password-flow credentials (``username`` carries the email)."""
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class Identity(BaseModel):
    """Current user as reported by ``/auth/me``."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str | None = None
    role: str | None = None
    client_id: str | None = None
    client_name: str = "Client"
    created_at: datetime | None = None


class TokenValidationResult(BaseModel):
    valid: bool
    identity: Identity | None = None
    expires_at: datetime | None = None
    error: SessionErrorKind | None = None


class SessionSnapshot(BaseModel):
    """Read-only view of the session for the HTTP surface."""
    status: SessionStatus
    identity: Identity | None = None
    expires_at: datetime | None = None
    error: SessionErrorKind | None = None
