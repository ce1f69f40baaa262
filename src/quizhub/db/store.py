"""Bounded, retry-once execution of store calls."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, TypeVar

import structlog
from sqlalchemy.exc import DBAPIError

from quizhub.config import get_settings
from quizhub.errors import StoreUnavailable

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

T = TypeVar("T")

# Connection loss, driver errors and timeouts. Anything else is a bug and propagates as-is.
_STORE_ERRORS = (DBAPIError, OSError, TimeoutError)


async def _rollback(db: AsyncSession, operation: str) -> None:
    try:
        await db.rollback()
    except _STORE_ERRORS:
        logger.warning("store_rollback_failed", operation=operation, exc_info=True)


async def call_store(
    db: AsyncSession,
    operation: str,
    fn: Callable[[], Awaitable[T]],
    timeout: float | None = None,
    idempotent: bool = True,
) -> T:
    """
    Run ``fn`` against the store with a timeout, retrying once on failure.

    A timed-out call may still have committed server-side. When ``fn`` is not
    ``idempotent`` a timeout is therefore not retried, so one event is never
    applied twice. Driver errors are retried either way.

    Raises:
        StoreUnavailable: If the second attempt fails too, or a non-idempotent
            call timed out.
    """
    if timeout is None:
        timeout = get_settings().store_timeout_seconds

    try:
        return await asyncio.wait_for(fn(), timeout=timeout)
    except TimeoutError as exc:
        await _rollback(db, operation)
        if not idempotent:
            logger.error("store_call_timed_out", operation=operation, timeout=timeout)
            raise StoreUnavailable(operation) from exc
        logger.warning("store_call_retry", operation=operation, error="timeout")
    except _STORE_ERRORS as exc:
        logger.warning("store_call_retry", operation=operation, error=str(exc))
        await _rollback(db, operation)

    try:
        return await asyncio.wait_for(fn(), timeout=timeout)
    except _STORE_ERRORS as exc:
        logger.error("store_call_failed", operation=operation, error=str(exc))
        await _rollback(db, operation)
        raise StoreUnavailable(operation) from exc
