"""Leaderboard reduction: latest attempt per user, ranked.

Users are ranked by score_percentage DESC, then by completed_at ASC (the
earlier finisher wins a tie). Rank is the 1-based position in the truncated
result and is never stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from quizhub.time_utils import to_utc

DEFAULT_LIMIT = 20


class LeaderboardRow(Protocol):
    user_id: str
    paper_name: str
    score_percentage: Decimal | float
    total_questions: int
    total_correct: int
    total_attempted: int
    completed_at: datetime | str


@dataclass(frozen=True)
class RankedEntry:
    rank: int
    user_id: str
    paper_name: str
    score_percentage: Decimal
    total_questions: int
    total_correct: int
    total_attempted: int
    completed_at: datetime


def _score(row: LeaderboardRow) -> Decimal:
    return Decimal(str(row.score_percentage))


def latest_per_user(entries: Iterable[LeaderboardRow]) -> list[LeaderboardRow]:
    """Keep each user's entry with the greatest completed_at; the first seen wins an exact tie."""
    latest: dict[str, LeaderboardRow] = {}
    for entry in entries:
        current = latest.get(entry.user_id)
        if current is None or to_utc(entry.completed_at) > to_utc(current.completed_at):
            latest[entry.user_id] = entry
    return list(latest.values())


def rank_leaderboard(
    entries: Iterable[LeaderboardRow],
    paper_name: str,
    limit: int = DEFAULT_LIMIT,
) -> list[RankedEntry]:
    """Filter to ``paper_name``, dedupe per user, sort, truncate to ``limit`` and rank."""
    on_paper = (e for e in entries if e.paper_name == paper_name)
    deduped = latest_per_user(on_paper)
    ordered = sorted(deduped, key=lambda e: (-_score(e), to_utc(e.completed_at)))

    return [
        RankedEntry(
            rank=idx + 1,
            user_id=e.user_id,
            paper_name=e.paper_name,
            score_percentage=_score(e),
            total_questions=e.total_questions,
            total_correct=e.total_correct,
            total_attempted=e.total_attempted,
            completed_at=to_utc(e.completed_at),
        )
        for idx, e in enumerate(ordered[: max(limit, 0)])
    ]
