"""
Access token issuing and verification (HS256).

Only short-lived access tokens are issued; there is no refresh flow.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from quizhub.config import get_settings


def create_access_token(user_id: str, email: str) -> str:
    """
    Create a short-lived access token.

    Args:
        user_id: The user's database ID.
        email: The user's email, carried for display only.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": user_id,
        "email": email,
        "iss": settings.jwt_issuer,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "type": "access",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Decode and validate an access token.

    Raises:
        jwt.InvalidTokenError: If the signature, issuer, expiry or type is wrong.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iat", "iss"]},
    )
    if payload.get("type") != "access":
        msg = "Invalid token type"
        raise jwt.InvalidTokenError(msg)
    return payload
