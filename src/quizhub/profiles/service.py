"""Profile service: one profile per user, unique membership numbers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.db.models import Profile

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: str) -> Profile | None:
    """Fetch the profile of a user."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    return result.scalar_one_or_none()


async def _membership_taken(db: AsyncSession, membership_number: str, exclude_user_id: str | None = None) -> bool:
    stmt = select(Profile.id).where(Profile.membership_number == membership_number)
    if exclude_user_id is not None:
        stmt = stmt.where(Profile.user_id != exclude_user_id)
    result = await db.execute(stmt)
    return result.first() is not None


async def create_profile(
    db: AsyncSession,
    user_id: str,
    name: str,
    mobile: str,
    email: str,
    membership_number: str,
) -> Profile:
    """
    Create the profile of a user.

    Raises:
        ValueError: If the user already has a profile or the membership number is taken.
    """
    if await get_profile(db, user_id) is not None:
        msg = "Profile already exists"
        raise ValueError(msg)
    if await _membership_taken(db, membership_number):
        msg = "Membership number already registered"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    profile = Profile(
        user_id=user_id,
        name=name,
        mobile=mobile,
        email=email.lower(),
        membership_number=membership_number,
        created_at=now,
        updated_at=now,
    )
    db.add(profile)
    await db.flush()
    logger.info("Profile created for user %s", user_id)
    return profile


async def update_profile(db: AsyncSession, profile: Profile, changes: dict[str, Any]) -> Profile:
    """
    Apply a partial update.

    Raises:
        ValueError: If the new membership number belongs to another user.
    """
    membership_number = changes.get("membership_number")
    if membership_number and await _membership_taken(db, membership_number, exclude_user_id=profile.user_id):
        msg = "Membership number already registered"
        raise ValueError(msg)

    for field, value in changes.items():
        if value is None:
            continue
        setattr(profile, field, value.lower() if field == "email" else value)
    profile.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return profile
