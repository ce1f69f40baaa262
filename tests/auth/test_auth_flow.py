"""End-to-end tests for registration, guarded login and /me."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.auth.password import hash_password
from quizhub.auth.service import _record_login
from quizhub.db.models import LoginAttempt, User
from quizhub.errors import StoreUnavailable
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, USER_EMAIL, USER_PASSWORD, bearer, register


async def _login(client: AsyncClient, email: str, password: str):
    return await client.post("/api/v1/auth/login", json={"email": email, "password": password})


class TestRegistration:
    async def test_register_returns_token_and_user(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "New.User@Example.com",
            "password": USER_PASSWORD,
        })
        assert response.status_code == 201
        data = response.json()
        assert data["access_token"]
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "new.user@example.com"
        assert data["user"]["role"] == "user"
        assert data["user"]["has_profile"] is False

    async def test_register_duplicate_email(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/register", json={
            "email": USER_EMAIL.upper(),
            "password": USER_PASSWORD,
        })
        assert response.status_code == 409

    @pytest.mark.parametrize("password", ["short1A", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere"])
    async def test_register_weak_password(self, client: AsyncClient, password: str):
        response = await client.post("/api/v1/auth/register", json={
            "email": "weak@example.com",
            "password": password,
        })
        assert response.status_code == 400

    async def test_register_invalid_email(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": "not-an-email",
            "password": USER_PASSWORD,
        })
        assert response.status_code == 422

    async def test_admin_email_gets_admin_role(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/register", json={
            "email": ADMIN_EMAIL,
            "password": ADMIN_PASSWORD,
        })
        assert response.status_code == 201
        assert response.json()["user"]["role"] == "admin"


class TestLogin:
    async def test_login_success(self, client: AsyncClient, registered_user: dict):
        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["user"]["id"] == registered_user["user_id"]
        assert data["user"]["last_login"] is not None
        assert data["user"]["login_count"] == 1

    async def test_login_email_is_case_insensitive(self, client: AsyncClient, registered_user: dict):
        response = await _login(client, "TestUser@Example.com", USER_PASSWORD)
        assert response.status_code == 200

    async def test_wrong_password(self, client: AsyncClient, registered_user: dict):
        response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_unknown_email(self, client: AsyncClient):
        response = await _login(client, "nobody@example.com", "AnyP@ssw0rd")
        assert response.status_code == 401

    async def test_warning_when_few_attempts_remain(self, client: AsyncClient, registered_user: dict):
        for _ in range(2):
            response = await _login(client, USER_EMAIL, "WrongP@ss1")
            assert "remaining" not in response.json()["detail"]

        response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 401
        assert "2 attempts remaining" in response.json()["detail"]

        response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert "1 attempt remaining" in response.json()["detail"]

    async def test_fifth_failure_locks_account(self, client: AsyncClient, registered_user: dict):
        for _ in range(4):
            response = await _login(client, USER_EMAIL, "WrongP@ss1")
            assert response.status_code == 401

        response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["password_reset_required"] is True
        assert detail["blocked_until"] is not None
        assert "locked" in detail["message"].lower()

    async def test_locked_account_rejects_correct_password(self, client: AsyncClient, registered_user: dict):
        for _ in range(5):
            await _login(client, USER_EMAIL, "WrongP@ss1")

        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 429
        assert response.json()["detail"]["password_reset_required"] is True

    async def test_unknown_email_can_be_locked(self, client: AsyncClient):
        for _ in range(5):
            await _login(client, "ghost@example.com", "WrongP@ss1")
        response = await _login(client, "ghost@example.com", "WrongP@ss1")
        assert response.status_code == 429

    async def test_success_resets_failure_count(self, client: AsyncClient, registered_user: dict):
        for _ in range(4):
            await _login(client, USER_EMAIL, "WrongP@ss1")

        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 200

        for _ in range(4):
            response = await _login(client, USER_EMAIL, "WrongP@ss1")
            assert response.status_code == 401

    async def test_lock_state_unreadable_returns_503(
        self, client: AsyncClient, registered_user: dict, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(
            "quizhub.auth.service.is_blocked", AsyncMock(side_effect=StoreUnavailable("is_blocked"))
        )
        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 503
        assert response.headers["retry-after"] == "5"

    async def test_unrecorded_attempt_still_returns_result(
        self, client: AsyncClient, registered_user: dict, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(
            "quizhub.auth.service.record_attempt", AsyncMock(side_effect=StoreUnavailable("record_attempt"))
        )
        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 200

        response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    async def test_lock_expiry_carries_utc_offset(self, client: AsyncClient, registered_user: dict):
        for _ in range(5):
            response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 429
        blocked_until = response.json()["detail"]["blocked_until"]
        assert blocked_until.endswith("+00:00")
        assert datetime.fromisoformat(blocked_until).tzinfo is not None

    async def test_attempt_recorded_when_login_metadata_fails(
        self,
        client: AsyncClient,
        registered_user: dict,
        db_session: AsyncSession,
        monkeypatch: pytest.MonkeyPatch,
    ):
        for _ in range(3):
            await _login(client, USER_EMAIL, "WrongP@ss1")
        monkeypatch.setattr(
            "quizhub.auth.service._record_login", AsyncMock(side_effect=StoreUnavailable("record_login"))
        )

        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 200

        result = await db_session.execute(select(LoginAttempt).where(LoginAttempt.email == USER_EMAIL))
        assert result.scalar_one().failed_attempts == 0

    async def test_record_login_store_error_is_unavailable(self):
        db = MagicMock()
        db.execute = AsyncMock(side_effect=OperationalError("UPDATE users", {}, Exception("connection reset")))
        db.commit = AsyncMock()
        db.rollback = AsyncMock()
        user = User(id="u-1", email=USER_EMAIL, password_hash=hash_password(USER_PASSWORD), login_count=0)

        with pytest.raises(StoreUnavailable) as exc_info:
            await _record_login(db, user, USER_PASSWORD)
        assert exc_info.value.operation == "record_login"
        assert user.login_count == 0
        db.commit.assert_not_awaited()


class TestPasswordReset:
    async def _reset(self, client: AsyncClient, token: str, new_password: str):
        return await client.post(
            "/api/v1/auth/reset-password", json={"new_password": new_password}, headers=bearer(token)
        )

    async def test_reset_lifts_lock(self, client: AsyncClient, registered_user: dict):
        for _ in range(5):
            response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 429

        response = await self._reset(client, registered_user["access_token"], "N3wSecureP@ss")
        assert response.status_code == 200

        response = await _login(client, USER_EMAIL, "N3wSecureP@ss")
        assert response.status_code == 200

    async def test_old_password_rejected_after_reset(self, client: AsyncClient, registered_user: dict):
        response = await self._reset(client, registered_user["access_token"], "N3wSecureP@ss")
        assert response.status_code == 200

        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 401

    async def test_reset_restarts_failure_count(self, client: AsyncClient, registered_user: dict):
        for _ in range(4):
            await _login(client, USER_EMAIL, "WrongP@ss1")
        await self._reset(client, registered_user["access_token"], "N3wSecureP@ss")

        response = await _login(client, USER_EMAIL, "WrongP@ss1")
        assert response.status_code == 401
        assert "remaining" not in response.json()["detail"]

    async def test_weak_password_rejected(self, client: AsyncClient, registered_user: dict):
        response = await self._reset(client, registered_user["access_token"], "weakpass")
        assert response.status_code == 400

        response = await _login(client, USER_EMAIL, USER_PASSWORD)
        assert response.status_code == 200

    async def test_requires_token(self, client: AsyncClient, registered_user: dict):
        response = await client.post("/api/v1/auth/reset-password", json={"new_password": "N3wSecureP@ss"})
        assert response.status_code in (401, 403)

    async def test_block_not_cleared_returns_503(
        self, client: AsyncClient, registered_user: dict, monkeypatch: pytest.MonkeyPatch
    ):
        monkeypatch.setattr(
            "quizhub.auth.service.record_attempt", AsyncMock(side_effect=StoreUnavailable("record_attempt"))
        )
        response = await self._reset(client, registered_user["access_token"], "N3wSecureP@ss")
        assert response.status_code == 503


class TestMe:
    async def test_me(self, authed_client: AsyncClient, registered_user: dict):
        response = await authed_client.get("/api/v1/auth/me")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == registered_user["user_id"]
        assert data["email"] == USER_EMAIL

    async def test_me_without_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code in (401, 403)

    async def test_me_with_garbage_token(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers=bearer("not.a.jwt"))
        assert response.status_code == 401

    async def test_login_token_works_for_me(self, client: AsyncClient):
        await register(client, "second@example.com", USER_PASSWORD)
        login = await _login(client, "second@example.com", USER_PASSWORD)
        response = await client.get("/api/v1/auth/me", headers=bearer(login.json()["access_token"]))
        assert response.status_code == 200
        assert response.json()["email"] == "second@example.com"
