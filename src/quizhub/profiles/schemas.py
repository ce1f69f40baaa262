"""Request/response schemas for profile endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator


class ProfileCreateRequest(BaseModel):
    """Profile details required before taking quizzes."""

    name: str = Field(..., min_length=1, max_length=200)
    mobile: str = Field(..., min_length=5, max_length=32)
    email: EmailStr
    membership_number: str = Field(..., min_length=1, max_length=64)

    @field_validator("name", "mobile", "membership_number", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        """Strip surrounding whitespace so blank values fail min_length."""
        return v.strip() if isinstance(v, str) else v


class ProfileUpdateRequest(BaseModel):
    """Partial profile update. Only provided fields change."""

    name: str | None = Field(None, min_length=1, max_length=200)
    mobile: str | None = Field(None, min_length=5, max_length=32)
    email: EmailStr | None = None
    membership_number: str | None = Field(None, min_length=1, max_length=64)

    @field_validator("name", "mobile", "membership_number", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        """Strip surrounding whitespace so blank values fail min_length."""
        return v.strip() if isinstance(v, str) else v


class ProfileResponse(BaseModel):
    user_id: str
    name: str
    mobile: str
    email: str
    membership_number: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
