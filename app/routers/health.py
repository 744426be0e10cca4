"""Health check endpoint.

Reports the gateway mode, session status, live channel connectivity and the
size of the candidate cache.  The portal itself is always ``ok`` when it can
answer; a disconnected live channel is reported as ``degraded``.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends

from app.models.enums import ChannelStatus
from app.runtime import PortalRuntime, get_runtime

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check(runtime: PortalRuntime = Depends(get_runtime)) -> Any:
    live_status = runtime.live.status
    degraded = (
        runtime.live_enabled
        and runtime.session.is_authenticated
        and live_status != ChannelStatus.connected
    )

    return {
        "status": "degraded" if degraded else "ok",
        "demo_mode": runtime.settings.DEMO_MODE,
        "session": runtime.session.status.value,
        "live_channel": live_status.value,
        "expiry_check": runtime.session.expiry_check_running,
        "candidates": len(runtime.store),
    }
