"""Authentication router — all /api/v1/auth/* endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.auth.dependencies import get_current_user
from quizhub.auth.jwt import create_access_token
from quizhub.auth.password import PasswordStrengthError
from quizhub.auth.schemas import (
    LoginRequest,
    PasswordResetRequest,
    PasswordResetResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from quizhub.auth.service import get_user_role, register_user, reset_password, sign_in
from quizhub.config import get_settings
from quizhub.database import get_session
from quizhub.db.models import Profile, User
from quizhub.errors import BlockedAccount, InvalidCredentials
from quizhub.time_utils import to_utc

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


async def _user_response(db: AsyncSession, user: User) -> UserResponse:
    """Build a UserResponse from a User model."""
    profile = await db.execute(select(Profile.id).where(Profile.user_id == user.id))
    return UserResponse(
        id=user.id,
        email=user.email,
        role=await get_user_role(db, user.id),
        has_profile=profile.scalar_one_or_none() is not None,
        created_at=user.created_at,
        last_login=user.last_login,
        login_count=user.login_count or 0,
    )


async def _token_response(db: AsyncSession, user: User) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user.id, user.email),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=await _user_response(db, user),
    )


def _blocked_detail(exc: BlockedAccount) -> dict[str, object]:
    return {
        "message": str(exc),
        "password_reset_required": True,
        "blocked_until": to_utc(exc.blocked_until).isoformat() if exc.blocked_until else None,
    }


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Register with email + password."""
    try:
        user = await register_user(db, body.email, body.password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    await db.commit()
    return await _token_response(db, user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """
    Login with email + password.

    429 when the account is locked (before or because of this attempt), 401
    on bad credentials with a warning once few attempts remain, 503 when the
    lock state cannot be read.
    """
    settings = get_settings()
    try:
        user = await sign_in(db, body.email, body.password)
    except BlockedAccount as e:
        raise HTTPException(status_code=429, detail=_blocked_detail(e)) from e
    except InvalidCredentials as e:
        detail = str(e)
        remaining = e.remaining_attempts
        if remaining is not None and remaining <= settings.login_warning_threshold:
            noun = "attempt" if remaining == 1 else "attempts"
            detail = f"{detail}. {remaining} {noun} remaining before your account is locked."
        raise HTTPException(status_code=401, detail=detail) from e

    return await _token_response(db, user)


@router.get("/me", response_model=UserResponse)
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Get the authenticated user."""
    return await _user_response(db, user)


@router.post("/reset-password", response_model=PasswordResetResponse)
async def reset_my_password(
    body: PasswordResetRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PasswordResetResponse:
    """Set a new password and lift a login block on the account."""
    try:
        await reset_password(db, user, body.new_password)
    except PasswordStrengthError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return PasswordResetResponse(message="Password updated. You can sign in again.")
