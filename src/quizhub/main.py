"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from quizhub.auth.router import router as auth_router
from quizhub.config import get_settings
from quizhub.database import close_db, init_db
from quizhub.health.router import router as health_router
from quizhub.middleware import setup_middleware
from quizhub.papers.router import router as papers_router
from quizhub.profiles.router import router as profiles_router
from quizhub.quiz.router import router as quiz_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    yield
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="QuizHub API",
        description="Quiz papers, guarded sign-in, scoring and leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(profiles_router)
    app.include_router(papers_router)
    app.include_router(quiz_router)

    return app


app = create_app()
