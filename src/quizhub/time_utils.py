"""UTC helpers shared by the login guard and the leaderboard."""

from __future__ import annotations

from datetime import datetime, timezone


def to_utc(value: datetime | str) -> datetime:
    """Parse ISO strings and treat naive datetimes as UTC so comparisons are chronological."""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
