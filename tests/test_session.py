"""Unit tests for the session store and the expiry job registration."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.jobstores.base import JobLookupError

from app.core.errors import InvalidCredentialsError, SessionError, TransportError
from app.models.enums import SessionErrorKind, SessionStatus
from app.models.session import Identity, LoginCredentials, LoginResponse
from app.scheduler.jobs import SESSION_EXPIRY_JOB_ID
from app.services.session import SessionStore

IDENTITY = Identity(id="user-1", email="client@example.com", client_id="client-1", client_name="Acme")


def _gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.login = AsyncMock(return_value=LoginResponse(access_token="tok-1"))
    gateway.validate_session = AsyncMock(return_value=IDENTITY)
    return gateway


def _store(gateway: MagicMock | None = None, **kwargs) -> SessionStore:
    scheduler = MagicMock()
    scheduler.running = False
    return SessionStore(gateway=gateway or _gateway(), scheduler=scheduler, **kwargs)


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_authenticates_and_loads_identity(self) -> None:
        store = _store()

        snapshot = await store.login(LoginCredentials(username="a@b.c", password="pw"))

        assert snapshot.status == SessionStatus.authenticated
        assert snapshot.identity == IDENTITY
        assert store.token() == "tok-1"
        assert snapshot.expires_at is not None

    @pytest.mark.asyncio
    async def test_rejected_credentials_stay_anonymous(self) -> None:
        gateway = _gateway()
        gateway.login.side_effect = InvalidCredentialsError()
        store = _store(gateway)

        with pytest.raises(InvalidCredentialsError):
            await store.login(LoginCredentials(username="a@b.c", password="bad"))

        assert store.status == SessionStatus.anonymous
        assert store.token() is None

    @pytest.mark.asyncio
    async def test_identity_failure_after_login_rolls_back(self) -> None:
        """Given /auth/me fails after a good login, the session is not authenticated."""
        gateway = _gateway()
        gateway.validate_session.side_effect = TransportError("HTTP 503 from /auth/me")
        store = _store(gateway)
        seen: list[SessionStatus] = []
        store.add_listener(lambda snapshot: seen.append(snapshot.status))

        with pytest.raises(TransportError):
            await store.login(LoginCredentials(username="a@b.c", password="pw"))

        assert store.status == SessionStatus.anonymous
        assert store.token() is None
        assert store.identity is None
        assert store.expires_at is None
        assert SessionStatus.authenticated not in seen

    @pytest.mark.asyncio
    async def test_identity_failure_after_login_keeps_no_token_file(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        gateway = _gateway()
        gateway.validate_session.side_effect = TransportError("timeout")
        store = _store(gateway, token_file=str(token_file))

        with pytest.raises(TransportError):
            await store.login(LoginCredentials(username="a@b.c", password="pw"))

        assert not token_file.exists()


class TestValidateToken:
    @pytest.mark.asyncio
    async def test_revalidation_is_idempotent(self) -> None:
        """Given a valid token, validating twice yields the same session."""
        store = _store()

        first = await store.validate_token("tok-1")
        status_after_first, identity_after_first = store.status, store.identity
        second = await store.validate_token("tok-1")

        assert first.valid and second.valid
        assert store.status == status_after_first == SessionStatus.authenticated
        assert store.identity == identity_after_first
        assert store.token() == "tok-1"

    @pytest.mark.asyncio
    async def test_default_ttl_applied(self) -> None:
        store = _store(ttl_hours=24)
        before = datetime.now(timezone.utc)

        await store.validate_token("tok-1")

        assert before + timedelta(hours=23, minutes=59) < store.expires_at
        assert store.expires_at <= datetime.now(timezone.utc) + timedelta(hours=24)

    @pytest.mark.asyncio
    async def test_rejected_token_clears_credential(self) -> None:
        gateway = _gateway()
        gateway.validate_session.side_effect = SessionError("revoked")
        store = _store(gateway)

        result = await store.validate_token("tok-1")

        assert not result.valid
        assert result.error == SessionErrorKind.revoked
        assert store.status == SessionStatus.anonymous
        assert store.token() is None
        assert store.error == SessionErrorKind.revoked

    @pytest.mark.asyncio
    async def test_transport_failure_restores_status(self) -> None:
        """Given an authenticated session, a network error leaves it intact."""
        gateway = _gateway()
        store = _store(gateway)
        await store.validate_token("tok-1")
        gateway.validate_session.side_effect = TransportError("timeout")

        with pytest.raises(TransportError):
            await store.validate_token()

        assert store.status == SessionStatus.authenticated
        assert store.token() == "tok-1"
        assert store.error is None

    @pytest.mark.asyncio
    async def test_no_token_is_invalid(self) -> None:
        store = _store()
        result = await store.validate_token()
        assert result.error == SessionErrorKind.invalid
        assert store.status == SessionStatus.anonymous


class TestExpiryAndLogout:
    @pytest.mark.asyncio
    async def test_check_expiry_ends_session(self) -> None:
        store = _store()
        await store.validate_token("tok-1")

        expired = await store.check_expiry(now=store.expires_at + timedelta(seconds=1))

        assert expired
        assert store.status == SessionStatus.anonymous
        assert store.error == SessionErrorKind.expired
        assert store.token() is None

    @pytest.mark.asyncio
    async def test_check_expiry_before_deadline(self) -> None:
        store = _store()
        await store.validate_token("tok-1")

        assert not await store.check_expiry(now=store.expires_at - timedelta(minutes=1))
        assert store.status == SessionStatus.authenticated

    @pytest.mark.asyncio
    async def test_logout_makes_no_backend_call(self) -> None:
        gateway = _gateway()
        store = _store(gateway)
        await store.validate_token("tok-1")
        gateway.reset_mock()

        store.logout()

        assert store.status == SessionStatus.anonymous
        assert store.identity is None
        assert store.error is None
        assert not gateway.method_calls

    @pytest.mark.asyncio
    async def test_listeners_notified_on_status_change(self) -> None:
        store = _store()
        seen: list[SessionStatus] = []
        store.add_listener(lambda snapshot: seen.append(snapshot.status))

        await store.validate_token("tok-1")
        store.logout()

        assert seen == [
            SessionStatus.validating,
            SessionStatus.authenticated,
            SessionStatus.anonymous,
        ]


class TestInitAndTeardown:
    @pytest.mark.asyncio
    async def test_init_without_stored_token(self) -> None:
        store = _store()

        await store.init()

        assert store.status == SessionStatus.anonymous
        store._scheduler.start.assert_called_once()
        store._scheduler.add_job.assert_not_called()

    @pytest.mark.asyncio
    async def test_init_restores_token_file(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("tok-1")
        gateway = _gateway()
        store = _store(gateway, token_file=str(token_file))

        await store.init()

        gateway.validate_session.assert_awaited_once_with("tok-1")
        assert store.status == SessionStatus.authenticated
        store._scheduler.add_job.assert_called_once()
        assert store._scheduler.add_job.call_args.kwargs["id"] == SESSION_EXPIRY_JOB_ID

    @pytest.mark.asyncio
    async def test_logout_removes_token_file(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        store = _store(token_file=str(token_file))
        await store.login(LoginCredentials(username="a@b.c", password="pw"))
        assert token_file.read_text() == "tok-1"

        store.logout()

        assert not token_file.exists()

    @pytest.mark.asyncio
    async def test_init_survives_unreachable_backend(self, tmp_path: Path) -> None:
        token_file = tmp_path / "token"
        token_file.write_text("tok-1")
        gateway = _gateway()
        gateway.validate_session.side_effect = TransportError("connection refused")
        store = _store(gateway, token_file=str(token_file))

        await store.init()

        assert store.status == SessionStatus.anonymous
        assert store.token() == "tok-1"

    def test_teardown_removes_expiry_job_on_injected_scheduler(self) -> None:
        store = _store()
        store.teardown()
        store._scheduler.remove_job.assert_called_once_with(SESSION_EXPIRY_JOB_ID)
        store._scheduler.remove_all_jobs.assert_not_called()


class TestExpiryJobLifecycle:
    """The expiry check only runs while a session is authenticated."""

    @pytest.mark.asyncio
    async def test_logout_removes_expiry_job(self) -> None:
        store = SessionStore(gateway=_gateway())
        await store.init()
        try:
            await store.login(LoginCredentials(username="a@b.c", password="pw"))
            assert store._scheduler.get_job(SESSION_EXPIRY_JOB_ID) is not None
            assert store.expiry_check_running

            store.logout()

            assert store._scheduler.get_job(SESSION_EXPIRY_JOB_ID) is None
            assert not store.expiry_check_running
        finally:
            store.teardown()

    @pytest.mark.asyncio
    async def test_next_login_schedules_expiry_job_again(self) -> None:
        store = SessionStore(gateway=_gateway())
        await store.init()
        try:
            credentials = LoginCredentials(username="a@b.c", password="pw")
            await store.login(credentials)
            store.logout()

            await store.login(credentials)

            assert [job.id for job in store._scheduler.get_jobs()] == [SESSION_EXPIRY_JOB_ID]
        finally:
            store.teardown()

    @pytest.mark.asyncio
    async def test_invalidation_removes_expiry_job(self) -> None:
        store = _store()
        await store.init()
        await store.login(LoginCredentials(username="a@b.c", password="pw"))
        store._scheduler.reset_mock()

        store.invalidate(SessionErrorKind.revoked)

        store._scheduler.remove_job.assert_called_once_with(SESSION_EXPIRY_JOB_ID)

    @pytest.mark.asyncio
    async def test_logout_tolerates_missing_job(self) -> None:
        store = _store()
        await store.init()
        store._scheduler.remove_job.side_effect = JobLookupError(SESSION_EXPIRY_JOB_ID)

        await store.login(LoginCredentials(username="a@b.c", password="pw"))
        store.logout()

        assert store.status == SessionStatus.anonymous

    @pytest.mark.asyncio
    async def test_no_job_before_init(self) -> None:
        store = _store()
        await store.login(LoginCredentials(username="a@b.c", password="pw"))
        store._scheduler.add_job.assert_not_called()

        await store.init()

        store._scheduler.add_job.assert_called_once()


class TestMalformedIdentity:
    @pytest.mark.asyncio
    async def test_wrong_shape_identity_does_not_leave_validating(
        self, backend, gateway, mock_scheduler
    ) -> None:
        """Given /auth/me answers 200 with a list, validation fails as transport."""
        backend.fail("GET", "/auth/me", 200, [{"unexpected": True}])
        store = SessionStore(gateway=gateway, scheduler=mock_scheduler)

        with pytest.raises(TransportError):
            await store.validate_token("good-token")

        assert store.status == SessionStatus.anonymous
