"""Paper service: paper listing, quiz questions and admin question upload."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.config import get_settings
from quizhub.db.models import Paper, Question, UserAnswer
from quizhub.papers.schemas import QuestionUpload

logger = logging.getLogger(__name__)


async def list_papers(db: AsyncSession) -> list[tuple[Paper, int]]:
    """All papers ordered by name, each with its question count."""
    result = await db.execute(
        select(Paper, func.count(Question.id))
        .outerjoin(Question, Question.paper_name == Paper.paper_name)
        .group_by(Paper.id)
        .order_by(Paper.paper_name)
    )
    return [(paper, count) for paper, count in result.all()]


async def get_paper(db: AsyncSession, paper_name: str) -> Paper | None:
    """Fetch a paper by name."""
    result = await db.execute(select(Paper).where(Paper.paper_name == paper_name))
    return result.scalar_one_or_none()


async def get_paper_questions(db: AsyncSession, paper_name: str) -> list[Question]:
    """Questions of a paper ordered by question_no, capped at paper_question_limit."""
    result = await db.execute(
        select(Question)
        .where(Question.paper_name == paper_name)
        .order_by(Question.question_no)
        .limit(get_settings().paper_question_limit)
    )
    return list(result.scalars().all())


async def get_user_answers(db: AsyncSession, user_id: str, question_ids: list[str]) -> dict[str, UserAnswer]:
    """The user's answers for the given questions, keyed by question id."""
    if not question_ids:
        return {}
    result = await db.execute(
        select(UserAnswer).where(
            UserAnswer.user_id == user_id,
            UserAnswer.question_id.in_(question_ids),
        )
    )
    return {a.question_id: a for a in result.scalars()}


async def get_questions_with_answers(
    db: AsyncSession, user_id: str, paper_name: str
) -> list[tuple[Question, UserAnswer | None]]:
    """Each question of the paper paired with the user's answer, if any."""
    questions = await get_paper_questions(db, paper_name)
    answers = await get_user_answers(db, user_id, [q.id for q in questions])
    return [(q, answers.get(q.id)) for q in questions]


async def upload_questions(db: AsyncSession, questions: list[QuestionUpload]) -> list[str]:
    """
    Insert questions, creating any paper that does not exist yet.

    Returns the names of the papers created.

    Raises:
        ValueError: If a (question_no, paper_name) pair is repeated in the batch
            or already exists.
    """
    keys = [(q.question_no, q.paper_name) for q in questions]
    if len(set(keys)) != len(keys):
        msg = "Duplicate question numbers within the upload"
        raise ValueError(msg)

    existing = await db.execute(
        select(Question.question_no, Question.paper_name).where(
            Question.paper_name.in_(sorted({name for _, name in keys})),
            Question.question_no.in_(sorted({no for no, _ in keys})),
        )
    )
    wanted = set(keys)
    clashes = sorted(f"{name} #{no}" for no, name in existing.all() if (no, name) in wanted)
    if clashes:
        msg = f"Questions already exist: {', '.join(clashes)}"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    names = sorted({q.paper_name for q in questions})
    known = await db.execute(select(Paper.paper_name).where(Paper.paper_name.in_(names)))
    known_names = set(known.scalars())
    created = [name for name in names if name not in known_names]
    for name in created:
        db.add(Paper(paper_name=name, created_at=now))
    await db.flush()

    for q in questions:
        db.add(
            Question(
                paper_name=q.paper_name,
                question_no=q.question_no,
                question=q.question,
                option_a=q.option_a,
                option_b=q.option_b,
                option_c=q.option_c,
                option_d=q.option_d,
                correct_option=q.correct_option,
                created_at=now,
            )
        )
    try:
        await db.flush()
    except IntegrityError as e:
        msg = "Questions conflict with existing data"
        raise ValueError(msg) from e

    logger.info("Uploaded %d questions, created papers %s", len(questions), created)
    return created
