"""Quiz router — /api/v1/quiz/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.auth.dependencies import get_current_profile, get_current_user
from quizhub.database import get_session
from quizhub.db.models import Profile, User
from quizhub.quiz.schemas import (
    AnswerRequest,
    AnswerResponse,
    LeaderboardEntryResponse,
    LeaderboardResponse,
    ResetResponse,
    ResultQuestionResponse,
    ResultsResponse,
    ScoreResponse,
    SubmissionResponse,
)
from quizhub.quiz.scoring import ScoreSummary
from quizhub.quiz.service import QuizService

router = APIRouter(prefix="/api/v1/quiz", tags=["Quiz"])


def _score_response(summary: ScoreSummary) -> ScoreResponse:
    return ScoreResponse(
        total_questions=summary.total,
        total_attempted=summary.attempted,
        total_correct=summary.correct,
        score_percentage=float(summary.percentage),
    )


@router.put("/papers/{paper_name}/answers", response_model=AnswerResponse)
async def save_answer(
    paper_name: str,
    body: AnswerRequest,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> AnswerResponse:
    """Save the caller's selection for one question."""
    service = QuizService(db)
    try:
        answer = await service.save_answer(profile.user_id, paper_name, body.question_id, body.selected_option)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return AnswerResponse(
        question_id=answer.question_id,
        selected_option=answer.selected_option,
        is_submitted=answer.is_submitted,
    )


@router.post("/papers/{paper_name}/submit", response_model=SubmissionResponse, status_code=201)
async def submit(
    paper_name: str,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> SubmissionResponse:
    """Submit the quiz: score it and record a new leaderboard entry."""
    service = QuizService(db)
    try:
        entry, summary = await service.submit_quiz(profile.user_id, paper_name)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return SubmissionResponse(
        id=entry.id,
        paper_name=entry.paper_name,
        completed_at=entry.completed_at,
        score=_score_response(summary),
    )


@router.get("/papers/{paper_name}/results", response_model=ResultsResponse)
async def results(
    paper_name: str,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ResultsResponse:
    """The caller's score and per-question review."""
    service = QuizService(db)
    try:
        quiz_results = await service.get_results(profile.user_id, paper_name)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except PermissionError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    questions = [
        ResultQuestionResponse(
            id=q.id,
            question_no=q.question_no,
            question=q.question,
            option_a=q.option_a,
            option_b=q.option_b,
            option_c=q.option_c,
            option_d=q.option_d,
            correct_option=q.correct_option,
            selected_option=a.selected_option if a else None,
            is_correct=a is not None and a.selected_option == q.correct_option,
        )
        for q, a in quiz_results.questions
    ]
    return ResultsResponse(paper_name=paper_name, score=_score_response(quiz_results.summary), questions=questions)


@router.post("/papers/{paper_name}/reset", response_model=ResetResponse)
async def reset(
    paper_name: str,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> ResetResponse:
    """Clear the caller's answers so the paper can be retaken. Leaderboard history is kept."""
    service = QuizService(db)
    try:
        count = await service.reset_quiz_answers(profile.user_id, paper_name)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    await db.commit()
    return ResetResponse(paper_name=paper_name, reset_count=count)


@router.get("/papers/{paper_name}/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    paper_name: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Top entries for a paper: latest attempt per user, best score first."""
    service = QuizService(db)
    try:
        rows = await service.get_leaderboard(paper_name)
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    entries = [
        LeaderboardEntryResponse(
            rank=r.rank,
            user_id=r.user_id,
            name=name,
            score_percentage=float(r.score_percentage),
            total_questions=r.total_questions,
            total_correct=r.total_correct,
            total_attempted=r.total_attempted,
            completed_at=r.completed_at,
            is_current_user=r.user_id == user.id,
        )
        for r, name in rows
    ]
    return LeaderboardResponse(paper_name=paper_name, entries=entries, total=len(entries))
