"""Application read endpoints (pass-through to the gateway)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from app.models.candidate import BackendApplication
from app.runtime import PortalRuntime, require_session

router = APIRouter()


@router.get("", response_model=list[BackendApplication])
async def list_applications(
    status: str | None = Query(default=None),
    flagged_only: bool = Query(default=False),
    include_deleted: bool = Query(default=False),
    runtime: PortalRuntime = Depends(require_session),
) -> list[BackendApplication]:
    return await runtime.gateway.fetch_applications(
        status=status, flagged_only=flagged_only, include_deleted=include_deleted
    )


@router.get("/stats")
async def application_stats(runtime: PortalRuntime = Depends(require_session)) -> dict[str, Any]:
    return await runtime.gateway.fetch_application_stats()
