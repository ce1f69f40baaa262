"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.auth.jwt import verify_token
from quizhub.auth.service import get_user_by_id, get_user_role
from quizhub.database import get_session
from quizhub.db.models import Profile, User

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Extract and verify the bearer token, return the User model. Raises 401 on failure."""
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, str(payload["sub"]))
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    return user


async def get_current_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> Profile:
    """
    Same as get_current_user but requires a completed profile.

    Quiz endpoints use this: leaderboard rows reference profiles.
    """
    result = await db.execute(select(Profile).where(Profile.user_id == user.id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise HTTPException(status_code=403, detail="Complete your profile before taking quizzes")
    return profile


async def require_admin(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Allow only users holding the admin role."""
    if await get_user_role(db, user.id) != "admin":
        raise HTTPException(status_code=403, detail="Admin role required")
    return user
