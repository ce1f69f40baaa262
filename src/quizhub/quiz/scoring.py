"""Quiz scoring. Pure, no I/O.

Percentages are Decimals rounded half-up to two places, the precision of the
leaderboard's NUMERIC(5,2) column: 1 of 3 correct scores 33.33.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

_TWO_PLACES = Decimal("0.01")


class Scorable(Protocol):
    correct_option: str
    selected_option: str | None


@dataclass(frozen=True)
class AnsweredQuestion:
    """A question's correct option paired with the user's selection, if any."""

    question_id: str
    correct_option: str
    selected_option: str | None = None


@dataclass(frozen=True)
class ScoreSummary:
    total: int
    attempted: int
    correct: int
    percentage: Decimal


def score_percentage(correct: int, total: int) -> Decimal:
    """``correct / total * 100`` rounded half-up to two places; 0 for an empty paper."""
    if total <= 0:
        return Decimal("0.00")
    return (Decimal(correct) * 100 / Decimal(total)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def compute_score(questions: Iterable[Scorable]) -> ScoreSummary:
    """
    Score a set of questions.

    ``attempted`` counts non-null selections; ``correct`` counts selections equal
    to the correct option. An absent answer is never correct.
    """
    total = attempted = correct = 0
    for q in questions:
        total += 1
        if q.selected_option is not None:
            attempted += 1
            if q.selected_option == q.correct_option:
                correct += 1
    return ScoreSummary(
        total=total,
        attempted=attempted,
        correct=correct,
        percentage=score_percentage(correct, total),
    )
