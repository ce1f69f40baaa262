"""
Login guard: per-email failed-attempt counter and account blocking.

Independent of password verification. The caller checks ``is_blocked`` before
verifying credentials and always calls ``record_attempt`` afterwards.

The failure counter is incremented store-side in a single
``INSERT ... ON CONFLICT (email) DO UPDATE`` statement, so two concurrent
failures for the same email both count and the block cannot be skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import DateTime, case, exists, literal, null, select
from sqlalchemy.dialects import postgresql, sqlite

from quizhub.config import get_settings
from quizhub.db.models import LoginAttempt
from quizhub.db.store import call_store
from quizhub.time_utils import to_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


@dataclass(frozen=True)
class LoginAttemptState:
    """Counter state right after ``record_attempt``."""

    email: str
    failed_attempts: int
    blocked_until: datetime | None

    @property
    def is_blocked(self) -> bool:
        return self.blocked_until is not None

    def remaining_attempts(self, max_attempts: int | None = None) -> int:
        """Failures left before the block. Zero or less means blocked."""
        if max_attempts is None:
            max_attempts = get_settings().login_max_attempts
        return max_attempts - self.failed_attempts


def normalize_email(email: str) -> str:
    """Lower-case and strip an email so one address maps to one counter row."""
    return email.strip().lower()


def _insert_for(db: AsyncSession) -> Any:  # noqa: ANN401
    """Dialect-specific INSERT supporting ON CONFLICT."""
    if db.bind.dialect.name == "sqlite":
        return sqlite.insert(LoginAttempt)
    return postgresql.insert(LoginAttempt)


async def is_blocked(db: AsyncSession, email: str, now: datetime | None = None) -> bool:
    """
    Return True iff a record exists for ``email`` whose ``blocked_until`` is in the future.

    No record means not blocked. Read-only.

    Raises:
        StoreUnavailable: If the store cannot be read. Callers must treat this as
            "unknown" and not proceed with credential verification.
    """
    email = normalize_email(email)
    now = now or datetime.now(timezone.utc)
    stmt = select(
        exists().where(
            LoginAttempt.email == email,
            LoginAttempt.blocked_until.is_not(None),
            LoginAttempt.blocked_until > now,
        )
    )

    async def _query() -> bool:
        result = await db.execute(stmt)
        return bool(result.scalar())

    return await call_store(db, "is_blocked", _query)


async def record_attempt(
    db: AsyncSession,
    email: str,
    was_successful: bool,
    now: datetime | None = None,
) -> LoginAttemptState:
    """
    Record the outcome of a sign-in attempt and commit it.

    Success resets the counter and clears any block. Failure increments the
    counter and sets ``blocked_until = now + login_block_hours`` once the new
    count reaches ``login_max_attempts`` (re-armed on every further failure).

    Raises:
        StoreUnavailable: If the write fails twice, or a failure write timed out
            (it is not replayed). The credential result must still be returned
            to the user.
    """
    settings = get_settings()
    email = normalize_email(email)
    now = now or datetime.now(timezone.utc)
    max_attempts = settings.login_max_attempts
    block_until = now + timedelta(hours=settings.login_block_hours)

    insert = _insert_for(db)
    if was_successful:
        stmt = insert.values(
            email=email,
            failed_attempts=0,
            last_attempt_at=now,
            blocked_until=None,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_update(
            index_elements=[LoginAttempt.email],
            set_={
                "failed_attempts": 0,
                "last_attempt_at": now,
                "blocked_until": null(),
                "updated_at": now,
            },
        )
    else:
        new_count = LoginAttempt.failed_attempts + 1
        stmt = insert.values(
            email=email,
            failed_attempts=1,
            last_attempt_at=now,
            blocked_until=block_until if max_attempts <= 1 else None,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_update(
            index_elements=[LoginAttempt.email],
            set_={
                "failed_attempts": new_count,
                "last_attempt_at": now,
                "blocked_until": case(
                    (new_count >= max_attempts, literal(block_until, DateTime(timezone=True))),
                    else_=null(),
                ),
                "updated_at": now,
            },
        )
    stmt = stmt.returning(LoginAttempt.failed_attempts, LoginAttempt.blocked_until)

    async def _write() -> LoginAttemptState:
        row = (await db.execute(stmt)).one()
        await db.commit()
        blocked_until = to_utc(row.blocked_until) if row.blocked_until is not None else None
        return LoginAttemptState(email=email, failed_attempts=row.failed_attempts, blocked_until=blocked_until)

    # A success resets to a fixed state and may be replayed; a failure increments.
    state = await call_store(db, "record_attempt", _write, idempotent=was_successful)
    if state.is_blocked and not was_successful:
        logger.warning("login_blocked", email=email, failed_attempts=state.failed_attempts)
    return state
