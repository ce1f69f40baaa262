"""Profile router — /api/v1/profiles/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.auth.dependencies import get_current_user
from quizhub.database import get_session
from quizhub.db.models import Profile, User
from quizhub.profiles.schemas import ProfileCreateRequest, ProfileResponse, ProfileUpdateRequest
from quizhub.profiles.service import create_profile, get_profile, update_profile

router = APIRouter(prefix="/api/v1/profiles", tags=["Profiles"])


def _profile_response(profile: Profile) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        name=profile.name,
        mobile=profile.mobile,
        email=profile.email,
        membership_number=profile.membership_number,
        created_at=profile.created_at,
        updated_at=profile.updated_at,
    )


@router.post("/me", response_model=ProfileResponse, status_code=201)
async def create_my_profile(
    body: ProfileCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Complete the profile of the authenticated user."""
    try:
        profile = await create_profile(
            db,
            user_id=user.id,
            name=body.name,
            mobile=body.mobile,
            email=body.email,
            membership_number=body.membership_number,
        )
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return _profile_response(profile)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Get own profile."""
    profile = await get_profile(db, user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    return _profile_response(profile)


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Update own profile."""
    profile = await get_profile(db, user.id)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")
    try:
        profile = await update_profile(db, profile, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return _profile_response(profile)
