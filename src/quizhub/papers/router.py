"""Paper router — /api/v1/papers/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.auth.dependencies import get_current_profile, get_current_user, require_admin
from quizhub.database import get_session
from quizhub.db.models import Profile, User
from quizhub.papers.schemas import (
    PaperListResponse,
    PaperResponse,
    QuestionUploadRequest,
    QuestionUploadResponse,
    QuizQuestionResponse,
    QuizQuestionsResponse,
)
from quizhub.papers.service import get_paper, get_questions_with_answers, list_papers, upload_questions

router = APIRouter(prefix="/api/v1/papers", tags=["Papers"])


@router.get("", response_model=PaperListResponse)
async def get_papers(
    _user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> PaperListResponse:
    """List papers with their question counts."""
    rows = await list_papers(db)
    papers = [
        PaperResponse(paper_name=paper.paper_name, question_count=count, created_at=paper.created_at)
        for paper, count in rows
    ]
    return PaperListResponse(papers=papers, total=len(papers))


@router.get("/{paper_name}/questions", response_model=QuizQuestionsResponse)
async def get_quiz_questions(
    paper_name: str,
    profile: Profile = Depends(get_current_profile),
    db: AsyncSession = Depends(get_session),
) -> QuizQuestionsResponse:
    """Questions of a paper with the caller's current selections. Correct options are withheld."""
    if await get_paper(db, paper_name) is None:
        raise HTTPException(status_code=404, detail="Paper not found")

    pairs = await get_questions_with_answers(db, profile.user_id, paper_name)
    questions = [
        QuizQuestionResponse(
            id=q.id,
            question_no=q.question_no,
            question=q.question,
            option_a=q.option_a,
            option_b=q.option_b,
            option_c=q.option_c,
            option_d=q.option_d,
            selected_option=a.selected_option if a else None,
            is_submitted=a.is_submitted if a else False,
        )
        for q, a in pairs
    ]
    answered = sum(1 for q in questions if q.selected_option is not None)
    return QuizQuestionsResponse(paper_name=paper_name, questions=questions, answered=answered, total=len(questions))


@router.post("/questions", response_model=QuestionUploadResponse, status_code=201)
async def upload(
    body: QuestionUploadRequest,
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> QuestionUploadResponse:
    """Add questions (admin only). Unknown papers are created."""
    try:
        created = await upload_questions(db, body.questions)
    except ValueError as e:
        await db.rollback()
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return QuestionUploadResponse(inserted=len(body.questions), papers_created=created)
