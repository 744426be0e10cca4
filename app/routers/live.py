"""Live update channel status and manual reconnect."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.core.errors import DomainError
from app.runtime import PortalRuntime, get_runtime, require_session

router = APIRouter()


def _status(runtime: PortalRuntime) -> dict[str, Any]:
    live = runtime.live
    last = live.last_event
    return {
        "enabled": runtime.live_enabled,
        "status": live.status.value,
        "retries": live.retries,
        "retries_exhausted": live.retries_exhausted,
        "last_event": last.model_dump(mode="json") if last else None,
    }


@router.get("/status")
async def live_status(runtime: PortalRuntime = Depends(get_runtime)) -> dict[str, Any]:
    return _status(runtime)


@router.post("/reconnect")
async def live_reconnect(runtime: PortalRuntime = Depends(require_session)) -> dict[str, Any]:
    """Reset the retry counter and reconnect the event stream."""
    if not runtime.live_enabled:
        raise DomainError(
            "LIVE_UPDATES_DISABLED", "Live updates are disabled", status_code=409
        )
    runtime.live.reconnect()
    return _status(runtime)
