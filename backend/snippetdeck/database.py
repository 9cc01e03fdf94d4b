"""
SnippetDeck Backend — Database Session Management
==================================================

What:  Declarative base, async engine/session factory builders and the
       per-request session dependency.
How:   The process entry point (the FastAPI lifespan, or a test fixture)
       builds the engine with `build_engine()` and keeps it on `app.state`.
       Nothing in this module opens connections at import time.
Who:   Used by the application lifespan, route dependencies, Alembic and tests.

Connection Pooling (PostgreSQL):
    pool_size=20, max_overflow=10 → at most 30 connections per worker.
    pool_pre_ping validates a pooled connection before handing it out.
    pool_recycle=3600 drops connections older than an hour.
    SQLite URLs (tests, local dev) skip the pool options.
"""

import logging
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from snippetdeck.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares one metadata object between the models, `create_all()` and Alembic.
    """
    pass


# ── Engine & Session Factory ──────────────────────────────────────────────
def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine described by `settings`."""
    options = {"echo": settings.log_level == "DEBUG"}
    if not settings.database_url.startswith("sqlite"):
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(settings.database_url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to `engine`.

    expire_on_commit=False keeps loaded attributes readable after commit,
    so response models can be built from ORM objects outside the session.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


# ── Startup Helpers ───────────────────────────────────────────────────────
async def wait_for_database(engine: AsyncEngine, settings: Settings) -> None:
    """
    Block until the database answers `SELECT 1`.

    Retries with exponential backoff and jitter on connection errors so the
    API can start alongside a database container that is still booting.
    The last error is re-raised once attempts are exhausted.
    """

    @retry(
        retry=retry_if_exception_type((OSError, OperationalError, InterfaceError)),
        stop=stop_after_attempt(settings.db_connect_attempts),
        wait=wait_exponential_jitter(initial=1, max=settings.db_connect_max_wait, jitter=1),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _ping() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    await _ping()


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables known to `Base.metadata` that do not exist yet."""
    # Registers the mappers on Base.metadata
    from snippetdeck.models import Snippet, User  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one database session per request.

    How it works:
        1. Opens a session from the factory stored on `app.state`
        2. Yields it to the route handler
        3. Commits on success, rolls back on any error, always closes

    Raises:
        Any exception from the handler is re-raised after rollback so the
        global exception handlers can build the response.
    """
    session_factory = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
