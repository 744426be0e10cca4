"""Session endpoints: login, token validation, logout and current status."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.models.session import LoginCredentials, SessionSnapshot, TokenValidationResult
from app.runtime import PortalRuntime, get_runtime

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SessionSnapshot)
async def current_session(runtime: PortalRuntime = Depends(get_runtime)) -> SessionSnapshot:
    return runtime.session.snapshot()


@router.post("/login", response_model=SessionSnapshot)
async def login(
    credentials: LoginCredentials,
    runtime: PortalRuntime = Depends(get_runtime),
) -> SessionSnapshot:
    """Sign in and load the candidate list.

    Rejected credentials answer 401 with ``INVALID_CREDENTIALS``.
    """
    snapshot = await runtime.session.login(credentials)
    if runtime.session.is_authenticated:
        await runtime.refresh_candidates()
    return snapshot


@router.post("/validate", response_model=TokenValidationResult)
async def validate(runtime: PortalRuntime = Depends(get_runtime)) -> TokenValidationResult:
    """Re-validate the held token against the backend."""
    return await runtime.session.validate_token()


@router.post("/logout", response_model=SessionSnapshot)
async def logout(runtime: PortalRuntime = Depends(get_runtime)) -> SessionSnapshot:
    runtime.session.logout()
    return runtime.session.snapshot()
