"""Unit tests for leaderboard reduction and ranking."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from quizhub.quiz.ranking import DEFAULT_LIMIT, latest_per_user, rank_leaderboard
from quizhub.time_utils import to_utc

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class Row:
    user_id: str
    score_percentage: Decimal | float
    completed_at: datetime | str
    paper_name: str = "P1"
    total_questions: int = 10
    total_correct: int = 0
    total_attempted: int = 0


class TestToUtc:
    def test_naive_is_utc(self):
        assert to_utc(datetime(2026, 1, 1, 12, 0)) == T0

    def test_iso_string_with_z(self):
        assert to_utc("2026-01-01T12:00:00Z") == T0

    def test_offset_is_converted(self):
        assert to_utc("2026-01-01T14:00:00+02:00") == T0


class TestLatestPerUser:
    def test_keeps_latest_attempt(self):
        rows = [
            Row("u1", 90, T0),
            Row("u1", 40, T0 + timedelta(hours=1)),
        ]
        latest = latest_per_user(rows)
        assert len(latest) == 1
        assert latest[0].score_percentage == 40

    def test_exact_tie_keeps_first_seen(self):
        first = Row("u1", 10, T0)
        second = Row("u1", 20, T0)
        assert latest_per_user([first, second]) == [first]


class TestRankLeaderboard:
    def test_latest_attempt_not_best(self):
        """u1 scored 90 then 40; only the later 40 counts, so u2 (60) leads."""
        rows = [
            Row("u1", 90, T0),
            Row("u2", 60, T0 + timedelta(minutes=30)),
            Row("u1", 40, T0 + timedelta(hours=1)),
        ]
        ranked = rank_leaderboard(rows, "P1")
        assert [(r.rank, r.user_id, r.score_percentage) for r in ranked] == [
            (1, "u2", Decimal("60")),
            (2, "u1", Decimal("40")),
        ]

    def test_filters_other_papers(self):
        rows = [Row("u1", 80, T0), Row("u2", 90, T0, paper_name="P2")]
        ranked = rank_leaderboard(rows, "P1")
        assert [r.user_id for r in ranked] == ["u1"]

    def test_tie_broken_by_earlier_completion(self):
        rows = [
            Row("late", 75, T0 + timedelta(minutes=5)),
            Row("early", 75, T0),
        ]
        ranked = rank_leaderboard(rows, "P1")
        assert [r.user_id for r in ranked] == ["early", "late"]

    def test_truncates_to_default_limit(self):
        rows = [Row(f"u{i}", i, T0 + timedelta(seconds=i)) for i in range(30)]
        ranked = rank_leaderboard(rows, "P1")
        assert len(ranked) == DEFAULT_LIMIT == 20
        assert ranked[0].user_id == "u29"
        assert [r.rank for r in ranked] == list(range(1, 21))

    def test_custom_limit(self):
        rows = [Row(f"u{i}", i, T0) for i in range(5)]
        assert len(rank_leaderboard(rows, "P1", limit=3)) == 3

    def test_no_duplicate_users_and_scores_non_increasing(self):
        rows = [
            Row(f"u{i % 7}", (i * 37) % 101, T0 + timedelta(minutes=i))
            for i in range(50)
        ]
        ranked = rank_leaderboard(rows, "P1")
        users = [r.user_id for r in ranked]
        assert len(users) == len(set(users))
        scores = [r.score_percentage for r in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_string_timestamps_compare_chronologically(self):
        """'+02:00' 13:00 is 11:00 UTC, earlier than 12:00Z."""
        rows = [
            Row("u1", 50, "2026-01-01T12:00:00Z"),
            Row("u1", 70, "2026-01-01T13:00:00+02:00"),
        ]
        ranked = rank_leaderboard(rows, "P1")
        assert ranked[0].score_percentage == Decimal("50")
        assert ranked[0].completed_at == T0

    def test_naive_timestamps_treated_as_utc(self):
        rows = [
            Row("u1", 50, datetime(2026, 1, 1, 12, 0)),
            Row("u1", 70, T0 + timedelta(minutes=1)),
        ]
        ranked = rank_leaderboard(rows, "P1")
        assert ranked[0].score_percentage == Decimal("70")

    def test_empty(self):
        assert rank_leaderboard([], "P1") == []
