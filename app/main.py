"""FastAPI application entry point.

Configures CORS, logging, the portal error envelope, lifespan events (the
``PortalRuntime`` with its session expiry job and live channel) and router
registration.
"""

import logging
from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import Settings, settings
from app.core.errors import PortalError, portal_error_handler
from app.core.logging import setup_logging
from app.routers import actions, applications, candidates, health, live, session
from app.runtime import PortalRuntime

logger = logging.getLogger(__name__)


def _parse_origins(raw: str) -> list[str]:
    raw = raw.strip()
    if raw == "*":
        return ["*"]
    return [o.strip() for o in raw.split(",") if o.strip()]


def create_app(config: Settings | None = None) -> FastAPI:
    """Build the portal application for *config* (defaults to env settings)."""
    config = config or settings

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        """Start the runtime on startup and tear it down on exit."""
        setup_logging(config.LOG_LEVEL)
        logger.info("Application starting up")
        runtime = PortalRuntime(config)
        application.state.runtime = runtime
        await runtime.init()
        yield
        await runtime.teardown()
        logger.info("Application shutting down")

    application = FastAPI(
        title="ATS Client Portal API",
        description="Client portal for reviewing candidates through the hiring pipeline",
        version="0.1.0",
        lifespan=lifespan,
    )

    # -----------------------------------------------------------------------
    # CORS Configuration
    # -----------------------------------------------------------------------
    application.add_middleware(
        CORSMiddleware,
        allow_origins=_parse_origins(config.ALLOWED_ORIGINS),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(PortalError, portal_error_handler)

    # -----------------------------------------------------------------------
    # Router Registration
    # -----------------------------------------------------------------------
    application.include_router(health.router, tags=["Health"])
    application.include_router(session.router, prefix="/api/v1/session", tags=["Session"])
    application.include_router(
        candidates.router, prefix="/api/v1/candidates", tags=["Candidates"]
    )
    application.include_router(
        actions.router,
        prefix="/api/v1/candidates/{candidate_id}/actions",
        tags=["Actions"],
    )
    application.include_router(
        applications.router, prefix="/api/v1/applications", tags=["Applications"]
    )
    application.include_router(live.router, prefix="/api/v1/live", tags=["Live"])
    return application


app = create_app()
