"""Wiring of the portal's long-lived services.

``PortalRuntime`` builds the session store, gateway, candidate store,
orchestrator and live update channel from ``Settings`` and ties their
lifecycles together: the live channel runs only while the session is
authenticated, and ending the session clears the candidate cache.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, Request

from app.core.config import Settings
from app.core.errors import PortalError, SessionError
from app.models.enums import SessionErrorKind, SessionStatus
from app.models.session import SessionSnapshot
from app.services.candidate_store import CandidateStore
from app.services.demo import DemoGateway
from app.services.gateway import RemoteGateway, TokenProvider
from app.services.live_channel import LiveUpdateChannel
from app.services.live_sync import LiveSync
from app.services.orchestrator import ActionOrchestrator
from app.services.session import SessionStore

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings, token_provider: TokenProvider) -> Any:
    """Return the demo gateway in demo mode, the HTTP gateway otherwise."""
    if settings.DEMO_MODE:
        logger.info("gateway_selected", extra={"gateway": "demo"})
        return DemoGateway()
    logger.info("gateway_selected", extra={"gateway": "remote", "base_url": settings.BACKEND_URL})
    return RemoteGateway(
        settings.BACKEND_URL,
        token_provider,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )


class PortalRuntime:
    def __init__(
        self,
        settings: Settings,
        gateway: Any = None,
        live_channel: LiveUpdateChannel | None = None,
        scheduler: Any = None,
    ) -> None:
        self.settings = settings
        self.session = SessionStore(
            ttl_hours=settings.SESSION_TTL_HOURS,
            check_interval_seconds=settings.SESSION_CHECK_INTERVAL_SECONDS,
            token_file=settings.SESSION_TOKEN_FILE,
            scheduler=scheduler,
        )
        self.gateway = gateway or build_gateway(settings, self.session.token)
        self.session.gateway = self.gateway
        self.store = CandidateStore(reject_stale_merges=settings.STORE_REJECT_STALE_MERGES)
        self.orchestrator = ActionOrchestrator(self.gateway, self.store, session=self.session)
        self.live_sync = LiveSync(self.gateway, self.store)
        self.live = live_channel or LiveUpdateChannel(
            settings.BACKEND_URL,
            self.session.token,
            reconnect_interval=settings.SSE_RECONNECT_INTERVAL_SECONDS,
            max_retries=settings.SSE_MAX_RETRIES,
        )
        if self.live.on_event is None:
            self.live.on_event = self.live_sync.handle
        self.session.add_listener(self._on_session_change)

    @property
    def live_enabled(self) -> bool:
        return self.settings.SSE_AUTOSTART and not self.settings.DEMO_MODE

    def _on_session_change(self, snapshot: SessionSnapshot) -> None:
        if snapshot.status == SessionStatus.anonymous:
            self.live.close()
            self.store.clear()
        elif snapshot.status == SessionStatus.authenticated and self.live_enabled:
            self.live.start()

    async def refresh_candidates(self) -> None:
        """Reload the cache, logging rather than raising on failure."""
        try:
            await self.store.refresh(self.gateway)
        except PortalError as exc:
            logger.warning("candidate_refresh_failed", extra={"code": exc.code})

    async def init(self) -> None:
        await self.session.init()
        if self.session.is_authenticated:
            await self.refresh_candidates()
        logger.info(
            "runtime_started",
            extra={"demo_mode": self.settings.DEMO_MODE, "session": self.session.status.value},
        )

    async def teardown(self) -> None:
        self.session.teardown()
        await self.live.aclose()
        await self.gateway.aclose()
        logger.info("runtime_stopped")


def get_runtime(request: Request) -> PortalRuntime:
    """FastAPI dependency returning the runtime created by the lifespan."""
    return request.app.state.runtime


def require_session(runtime: PortalRuntime = Depends(get_runtime)) -> PortalRuntime:
    """FastAPI dependency that refuses anonymous callers."""
    if not runtime.session.is_authenticated:
        kind = runtime.session.error or SessionErrorKind.invalid
        raise SessionError(kind.value)
    return runtime
