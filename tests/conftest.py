"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from quizhub.config import get_settings
from quizhub.database import close_db, get_engine, get_session, init_db
from quizhub.db import models  # noqa: F401 - registers tables on Base.metadata
from quizhub.db.base import Base
from quizhub.main import create_app
from quizhub.papers.schemas import QuestionUpload
from quizhub.papers.service import get_paper_questions, upload_questions

USER_EMAIL = "testuser@example.com"
USER_PASSWORD = "SecureP@ss1"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "AdminP@ss1"
PAPER_NAME = "GK-2024"

# question_no -> correct option
PAPER_ANSWERS = {1: "A", 2: "B", 3: "C"}


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch: pytest.MonkeyPatch) -> AsyncGenerator[None, None]:
    """Fresh SQLite database per test with every table created."""
    monkeypatch.setenv("QUIZHUB_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'quizhub.db'}")
    monkeypatch.setenv("QUIZHUB_ADMIN_EMAILS", json.dumps([ADMIN_EMAIL]))
    get_settings.cache_clear()

    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield

    await close_db()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client bound to the test database."""
    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Direct database session for setup and assertions."""
    sessions = get_session()
    session = await anext(sessions)
    try:
        yield session
    finally:
        await sessions.aclose()


async def register(client: AsyncClient, email: str, password: str) -> dict:
    """Register a user and return its credentials, id and token."""
    response = await client.post("/api/v1/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201, response.text
    data = response.json()
    return {
        "email": email,
        "password": password,
        "user_id": data["user"]["id"],
        "access_token": data["access_token"],
    }


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def profile_payload(**overrides: str) -> dict[str, str]:
    payload = {
        "name": "Test User",
        "mobile": "+15551234567",
        "email": USER_EMAIL,
        "membership_number": "M-0001",
    }
    payload.update(overrides)
    return payload


@pytest_asyncio.fixture
async def registered_user(client: AsyncClient) -> dict:
    """A plain user registered through the API."""
    return await register(client, USER_EMAIL, USER_PASSWORD)


@pytest_asyncio.fixture
async def authed_client(client: AsyncClient, registered_user: dict) -> AsyncClient:
    """Client authenticated as the plain user (no profile yet)."""
    client.headers["Authorization"] = f"Bearer {registered_user['access_token']}"
    return client


@pytest_asyncio.fixture
async def profile_client(authed_client: AsyncClient) -> AsyncClient:
    """Client authenticated as a user with a completed profile."""
    response = await authed_client.post("/api/v1/profiles/me", json=profile_payload())
    assert response.status_code == 201, response.text
    return authed_client


@pytest_asyncio.fixture
async def admin_headers(client: AsyncClient) -> dict[str, str]:
    """Authorization header of a user registered with an admin email."""
    admin = await register(client, ADMIN_EMAIL, ADMIN_PASSWORD)
    return bearer(admin["access_token"])


@pytest_asyncio.fixture
async def seeded_paper(db_session: AsyncSession) -> dict:
    """A three-question paper inserted directly. Returns its name and question ids by number."""
    await upload_questions(
        db_session,
        [
            QuestionUpload(
                paper_name=PAPER_NAME,
                question_no=no,
                question=f"Question {no}?",
                option_a="Alpha",
                option_b="Bravo",
                option_c="Charlie",
                option_d="Delta",
                correct_option=correct,
            )
            for no, correct in PAPER_ANSWERS.items()
        ],
    )
    await db_session.commit()
    questions = await get_paper_questions(db_session, PAPER_NAME)
    return {
        "paper_name": PAPER_NAME,
        "ids": {q.question_no: q.id for q in questions},
        "correct": dict(PAPER_ANSWERS),
    }
