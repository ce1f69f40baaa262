"""Quiz-taking service: answers, submission, results, reset and the leaderboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.config import get_settings
from quizhub.db.models import LeaderboardEntry, Profile, Question, UserAnswer
from quizhub.papers.service import get_paper, get_questions_with_answers
from quizhub.quiz.ranking import RankedEntry, rank_leaderboard
from quizhub.quiz.scoring import AnsweredQuestion, ScoreSummary, compute_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizResults:
    summary: ScoreSummary
    questions: list[tuple[Question, UserAnswer | None]]


class QuizService:
    """Quiz engine for one request: every method works within the given session."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _require_paper(self, paper_name: str) -> None:
        if await get_paper(self.db, paper_name) is None:
            raise LookupError("Paper not found")

    # --- Answering ---

    async def save_answer(
        self,
        user_id: str,
        paper_name: str,
        question_id: str,
        selected_option: str | None,
    ) -> UserAnswer:
        """
        Store (or clear, with None) the user's selection for a question.

        Raises:
            LookupError: If the question is not part of the paper.
            ValueError: If the answer was already submitted.
        """
        result = await self.db.execute(
            select(Question).where(Question.id == question_id, Question.paper_name == paper_name)
        )
        if result.scalar_one_or_none() is None:
            raise LookupError("Question not found")

        existing = await self.db.execute(
            select(UserAnswer).where(UserAnswer.user_id == user_id, UserAnswer.question_id == question_id)
        )
        answer = existing.scalar_one_or_none()
        now = datetime.now(timezone.utc)

        if answer is None:
            answer = UserAnswer(
                user_id=user_id,
                question_id=question_id,
                selected_option=selected_option,
                is_submitted=False,
                created_at=now,
                updated_at=now,
            )
            self.db.add(answer)
        elif answer.is_submitted:
            raise ValueError("Quiz already submitted. Reset it to retake.")
        else:
            answer.selected_option = selected_option
            answer.updated_at = now

        await self.db.flush()
        return answer

    # --- Submission ---

    async def submit_quiz(self, user_id: str, paper_name: str) -> tuple[LeaderboardEntry, ScoreSummary]:
        """
        Mark the user's answers as submitted, score the paper and add a leaderboard row.

        Every call inserts a new row; earlier rows for the same user and paper
        are kept as history.

        Raises:
            LookupError: If the paper does not exist.
        """
        await self._require_paper(paper_name)
        pairs = await get_questions_with_answers(self.db, user_id, paper_name)
        now = datetime.now(timezone.utc)

        question_ids = [q.id for q, _ in pairs]
        if question_ids:
            await self.db.execute(
                update(UserAnswer)
                .where(UserAnswer.user_id == user_id, UserAnswer.question_id.in_(question_ids))
                .values(is_submitted=True, updated_at=now)
                .execution_options(synchronize_session=False)
            )

        summary = compute_score(
            AnsweredQuestion(
                question_id=q.id,
                correct_option=q.correct_option,
                selected_option=a.selected_option if a else None,
            )
            for q, a in pairs
        )

        entry = LeaderboardEntry(
            user_id=user_id,
            paper_name=paper_name,
            score_percentage=summary.percentage,
            total_questions=summary.total,
            total_correct=summary.correct,
            total_attempted=summary.attempted,
            completed_at=now,
            created_at=now,
        )
        self.db.add(entry)
        await self.db.flush()

        logger.info(
            "Quiz submitted: user=%s paper=%s score=%s (%d/%d)",
            user_id, paper_name, summary.percentage, summary.correct, summary.total,
        )
        return entry, summary

    # --- Results ---

    async def get_results(self, user_id: str, paper_name: str) -> QuizResults:
        """
        Score summary and per-question detail, correct options included.

        Raises:
            LookupError: If the paper does not exist.
            PermissionError: If the user never submitted this paper.
        """
        await self._require_paper(paper_name)
        submitted = await self.db.execute(
            select(LeaderboardEntry.id)
            .where(LeaderboardEntry.user_id == user_id, LeaderboardEntry.paper_name == paper_name)
            .limit(1)
        )
        if submitted.first() is None:
            raise PermissionError("Submit the quiz to see results")

        pairs = await get_questions_with_answers(self.db, user_id, paper_name)
        summary = compute_score(
            AnsweredQuestion(
                question_id=q.id,
                correct_option=q.correct_option,
                selected_option=a.selected_option if a else None,
            )
            for q, a in pairs
        )
        return QuizResults(summary=summary, questions=pairs)

    # --- Reset ---

    async def reset_quiz_answers(self, user_id: str, paper_name: str) -> int:
        """
        Delete the user's answers for a paper so it can be retaken.

        Leaderboard rows are not touched. Returns the number of answers removed.

        Raises:
            LookupError: If the paper does not exist.
        """
        await self._require_paper(paper_name)
        result = await self.db.execute(
            delete(UserAnswer)
            .where(
                UserAnswer.user_id == user_id,
                UserAnswer.question_id.in_(select(Question.id).where(Question.paper_name == paper_name)),
            )
            .execution_options(synchronize_session=False)
        )
        count = result.rowcount or 0
        logger.info("Quiz reset: user=%s paper=%s answers_removed=%d", user_id, paper_name, count)
        return count

    # --- Leaderboard ---

    async def get_leaderboard(self, paper_name: str, limit: int | None = None) -> list[tuple[RankedEntry, str]]:
        """
        Ranked leaderboard for a paper with each user's profile name.

        Raises:
            LookupError: If the paper does not exist.
        """
        await self._require_paper(paper_name)
        if limit is None:
            limit = get_settings().leaderboard_size

        result = await self.db.execute(
            select(LeaderboardEntry)
            .where(LeaderboardEntry.paper_name == paper_name)
            .order_by(LeaderboardEntry.completed_at.desc())
        )
        ranked = rank_leaderboard(result.scalars().all(), paper_name, limit=limit)
        if not ranked:
            return []

        names_result = await self.db.execute(
            select(Profile.user_id, Profile.name).where(Profile.user_id.in_([r.user_id for r in ranked]))
        )
        names = {row.user_id: row.name for row in names_result}
        return [(r, names.get(r.user_id, "Unknown")) for r in ranked]
