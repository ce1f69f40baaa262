"""
Authentication business logic.

Handles user creation, role lookup, the guarded email + password sign-in and
password reset.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update

from quizhub.auth.login_guard import is_blocked, normalize_email, record_attempt
from quizhub.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from quizhub.config import get_settings
from quizhub.db.models import User, UserRole
from quizhub.db.store import call_store
from quizhub.errors import BlockedAccount, InvalidCredentials, StoreUnavailable

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_ROLE_PRIORITY = {"admin": 1, "moderator": 2, "user": 3}


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_user_role(db: AsyncSession, user_id: str) -> str:
    """Highest-priority role of a user: admin, then moderator, then user."""
    result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    roles = list(result.scalars())
    if not roles:
        return "user"
    return min(roles, key=lambda r: _ROLE_PRIORITY.get(r, len(_ROLE_PRIORITY) + 1))


async def grant_role(db: AsyncSession, user_id: str, role: str) -> None:
    """Grant a role unless the user already has it."""
    existing = await db.execute(select(UserRole).where(UserRole.user_id == user_id, UserRole.role == role))
    if existing.scalar_one_or_none() is None:
        db.add(UserRole(user_id=user_id, role=role, created_at=datetime.now(timezone.utc)))
        await db.flush()


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Register a new user with email + password.

    Emails listed in ``admin_emails`` are granted the admin role.

    Raises:
        ValueError: If the email already exists or the password is weak.
    """
    validate_password_strength(password)

    email = normalize_email(email)
    if await get_user_by_email(db, email) is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    user = User(
        email=email,
        password_hash=hash_password(password),
        created_at=datetime.now(timezone.utc),
        login_count=0,
    )
    db.add(user)
    await db.flush()

    admin_emails = {normalize_email(e) for e in get_settings().admin_emails}
    if email in admin_emails:
        await grant_role(db, user.id, "admin")

    logger.info("user_created", user_id=user.id, email=email)
    return user


# ---------------------------------------------------------------------------
# Sign-in
# ---------------------------------------------------------------------------


async def _record_login(db: AsyncSession, user: User, password: str) -> None:
    """
    Bump ``last_login``/``login_count`` (and upgrade an outdated hash) in one statement.

    ``user`` is detached; it is updated in place with the stored values.

    Raises:
        StoreUnavailable: If the update fails twice.
    """
    now = datetime.now(timezone.utc)
    values: dict[str, object] = {"last_login": now, "login_count": User.login_count + 1}
    new_hash = hash_password(password) if check_needs_rehash(user.password_hash) else None
    if new_hash is not None:
        values["password_hash"] = new_hash
    stmt = (
        update(User)
        .where(User.id == user.id)
        .values(**values)
        .returning(User.login_count)
        .execution_options(synchronize_session=False)
    )

    async def _write() -> int:
        count = (await db.execute(stmt)).scalar_one()
        await db.commit()
        return count

    user.login_count = await call_store(db, "record_login", _write)
    user.last_login = now
    if new_hash is not None:
        user.password_hash = new_hash
        logger.info("password_rehashed", user_id=user.id)


async def sign_in(db: AsyncSession, email: str, password: str) -> User:
    """
    Authenticate with email + password behind the login guard.

    The guard is consulted first; a blocked (or unknown, because the store is
    down) state stops the attempt before the password is checked. Every checked
    attempt is recorded before anything else is written.

    Raises:
        StoreUnavailable: If the block state or the user cannot be read.
        BlockedAccount: If the email is locked, before or because of this attempt.
        InvalidCredentials: If email or password is wrong.
    """
    email = normalize_email(email)

    if await is_blocked(db, email):
        logger.info("login_refused_blocked", email=email)
        raise BlockedAccount(email)

    user = await call_store(db, "get_user", lambda: get_user_by_email(db, email))
    success = user is not None and verify_password(password, user.password_hash)
    if user is not None:
        # Store retries roll the session back; a detached user keeps its loaded state.
        db.expunge(user)

    try:
        state = await record_attempt(db, email, success)
    except StoreUnavailable:
        logger.error("login_attempt_record_failed", email=email, success=success)
        state = None

    if user is not None and success:
        try:
            await _record_login(db, user, password)
        except StoreUnavailable:
            logger.error("login_metadata_update_failed", user_id=user.id)
        return user

    if state is None:
        raise InvalidCredentials()

    remaining = state.remaining_attempts()
    logger.info("login_failed", email=email, failed_attempts=state.failed_attempts, remaining=remaining)
    if remaining <= 0:
        raise BlockedAccount(email, state.blocked_until)
    raise InvalidCredentials(remaining_attempts=remaining)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------


async def reset_password(db: AsyncSession, user: User, new_password: str) -> None:
    """
    Set a new password for an authenticated user and lift any login block.

    The block is cleared by recording a successful attempt, so the counter
    starts again from zero.

    Raises:
        PasswordStrengthError: If the new password is too weak.
        StoreUnavailable: If the block cannot be cleared. The new password is
            already stored; retrying the reset is safe.
    """
    validate_password_strength(new_password)

    user.password_hash = hash_password(new_password)
    await db.commit()
    logger.info("password_reset", user_id=user.id)

    await record_attempt(db, user.email, True)
