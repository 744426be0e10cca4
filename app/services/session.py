"""Client session store.

Owns the bearer token and the identity of the signed-in client user.  The
gateway reads the token through ``SessionStore.token`` (its token provider),
so the credential never lives in a module global.

Lifecycle::

    anonymous -> validating -> authenticated -> anonymous

``init()`` starts the scheduler and restores a stored token (when a token
file is configured).  The periodic expiry check is scheduled while the
session is authenticated and removed as soon as the session ends, together
with the live channel.  ``teardown()`` stops it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from app.core.errors import SessionError, TransportError
from app.models.enums import SessionErrorKind, SessionStatus
from app.models.session import (
    Identity,
    LoginCredentials,
    SessionSnapshot,
    TokenValidationResult,
)
from app.scheduler.jobs import (
    add_session_expiry_job,
    create_scheduler,
    is_session_expiry_scheduled,
    remove_session_expiry_job,
    shutdown_scheduler,
    start_scheduler,
)

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionSnapshot], None]


class SessionStore:
    """Holds the token, identity and expiry of the current client session."""

    def __init__(
        self,
        gateway: Any = None,
        ttl_hours: int = 24,
        check_interval_seconds: int = 60,
        token_file: str = "",
        scheduler: Any = None,
    ) -> None:
        self.gateway = gateway
        self.ttl = timedelta(hours=ttl_hours)
        self.check_interval_seconds = check_interval_seconds
        self.token_path = Path(token_file) if token_file else None
        self._scheduler = scheduler
        self._owns_scheduler = scheduler is None
        self._started = False

        self.status = SessionStatus.anonymous
        self._token: str | None = None
        self.identity: Identity | None = None
        self.expires_at: datetime | None = None
        self.error: SessionErrorKind | None = None
        self._listeners: list[SessionListener] = []

    # -- accessors ---------------------------------------------------------

    def token(self) -> str | None:
        """Token provider handed to the gateway."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self.status == SessionStatus.authenticated

    @property
    def expiry_check_running(self) -> bool:
        return self._scheduler is not None and is_session_expiry_scheduled(self._scheduler)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self.status,
            identity=self.identity,
            expires_at=self.expires_at,
            error=self.error,
        )

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def _set_status(self, status: SessionStatus) -> None:
        changed = status != self.status
        self.status = status
        if not changed:
            return
        self._sync_expiry_job()
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("session_listener_failed")

    def _sync_expiry_job(self) -> None:
        """Schedule the expiry check while authenticated, drop it otherwise."""
        if not self._started or self._scheduler is None:
            return
        if self.status == SessionStatus.authenticated:
            add_session_expiry_job(
                self._scheduler, self.check_expiry, self.check_interval_seconds
            )
        elif self.status == SessionStatus.anonymous:
            remove_session_expiry_job(self._scheduler)

    # -- token persistence -------------------------------------------------

    def _load_token(self) -> str | None:
        if self.token_path is None or not self.token_path.exists():
            return None
        token = self.token_path.read_text(encoding="utf-8").strip()
        return token or None

    def _save_token(self) -> None:
        if self.token_path is None:
            return
        if self._token:
            self.token_path.write_text(self._token, encoding="utf-8")
        elif self.token_path.exists():
            self.token_path.unlink()

    def _clear(self) -> None:
        self._token = None
        self.identity = None
        self.expires_at = None
        self._save_token()

    # -- lifecycle ---------------------------------------------------------

    async def init(self) -> None:
        """Start the scheduler, then restore and validate a stored token.

        The expiry check is scheduled whenever the session becomes
        authenticated and removed whenever it ends.
        """
        if self._scheduler is None:
            self._scheduler = create_scheduler()
        start_scheduler(self._scheduler)
        self._started = True

        stored = self._load_token()
        if stored:
            self._token = stored
            self.status = SessionStatus.validating
            try:
                await self.validate_token(stored)
            except TransportError as exc:
                logger.warning(
                    "session_restore_deferred",
                    extra={"detail": exc.detail},
                )
        elif self.status == SessionStatus.validating:
            self.status = SessionStatus.anonymous
        self._sync_expiry_job()

    def teardown(self) -> None:
        """Stop the expiry check.  The session state is left as is."""
        self._started = False
        if self._scheduler is None:
            return
        if self._owns_scheduler:
            shutdown_scheduler(self._scheduler)
        else:
            remove_session_expiry_job(self._scheduler)
        logger.info("session_store_teardown")

    # -- operations --------------------------------------------------------

    async def login(self, credentials: LoginCredentials) -> SessionSnapshot:
        """Exchange credentials for a token and load the identity.

        Raises ``InvalidCredentialsError`` when the backend rejects the
        credentials; the session is left anonymous.  The session only becomes
        authenticated once the identity is loaded: if that follow-up call
        fails with ``TransportError`` the new token is discarded and the
        error propagates.
        """
        response = await self.gateway.login(credentials)
        self._token = response.access_token
        self.error = None
        try:
            await self.validate_token(response.access_token)
        except TransportError:
            self._clear()
            self._set_status(SessionStatus.anonymous)
            logger.warning("session_login_incomplete")
            raise
        logger.info(
            "session_login",
            extra={"client_id": self.identity.client_id if self.identity else None},
        )
        return self.snapshot()

    async def validate_token(self, token: str | None = None) -> TokenValidationResult:
        """Validate *token* (defaults to the held one) against the backend.

        Re-validating a valid token leaves the session authenticated with the
        same identity.  A rejected token ends the session with the reason the
        backend gave; a transport failure restores the previous status and
        propagates as ``TransportError``.
        """
        token = token or self._token
        if not token:
            self._clear()
            self.error = SessionErrorKind.invalid
            self._set_status(SessionStatus.anonymous)
            return TokenValidationResult(valid=False, error=SessionErrorKind.invalid)

        previous = self.status
        if previous != SessionStatus.authenticated:
            self._set_status(SessionStatus.validating)

        try:
            identity = await self.gateway.validate_session(token)
        except SessionError as exc:
            kind = SessionErrorKind(exc.kind)
            self._clear()
            self.error = kind
            self._set_status(SessionStatus.anonymous)
            logger.info("session_token_rejected", extra={"kind": kind.value})
            return TokenValidationResult(valid=False, error=kind)
        except TransportError:
            restored = previous
            if restored == SessionStatus.validating:
                restored = SessionStatus.anonymous
            self._set_status(restored)
            raise

        self._token = token
        self.identity = identity
        self.expires_at = datetime.now(timezone.utc) + self.ttl
        self.error = None
        self._save_token()
        self._set_status(SessionStatus.authenticated)
        return TokenValidationResult(
            valid=True, identity=identity, expires_at=self.expires_at
        )

    async def check_expiry(self, now: datetime | None = None) -> bool:
        """End the session if it is past ``expires_at``.

        Returns True when the session was expired by this call.
        """
        if self.status != SessionStatus.authenticated or self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        if now <= self.expires_at:
            return False
        logger.info("session_expired", extra={"expires_at": self.expires_at.isoformat()})
        self.invalidate(SessionErrorKind.expired)
        return True

    def invalidate(self, kind: SessionErrorKind | str) -> None:
        """End the session because the backend refused the credential."""
        self._clear()
        self.error = SessionErrorKind(kind)
        self._set_status(SessionStatus.anonymous)

    def logout(self) -> None:
        """Clear the credential locally.  No backend call is made."""
        self._clear()
        self.error = None
        self._set_status(SessionStatus.anonymous)
        logger.info("session_logout")
