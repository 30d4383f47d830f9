"""Async engine and session factories for the worklog database."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.core.config import settings

# Registers every table on Base.metadata
from src.models import (  # noqa: F401
    Base,
    Client,
    HistorySnapshot,
    PaymentEntry,
    User,
    WorkItem,
)


def engine_options(database_url: str) -> dict[str, Any]:
    """Default engine keyword arguments for a database URL.

    SQLite gets no pool sizing; server databases get a fixed-size pool with
    pre-ping so a restarted PostgreSQL does not fail the next request.
    """
    options: dict[str, Any] = {"echo": settings.debug}
    if make_url(database_url).get_backend_name() == "sqlite":
        return options
    options.update(
        pool_size=settings.database_pool_size,
        max_overflow=0,
        pool_pre_ping=True,
    )
    return options


def create_engine(database_url: str | None = None, **overrides: Any) -> AsyncEngine:
    """Create an async engine for ``database_url`` (default: settings).

    Keyword ``overrides`` replace the defaults from :func:`engine_options`.
    """
    url = database_url or settings.database_url
    return create_async_engine(url, **{**engine_options(url), **overrides})


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Objects stay usable after commit; flushes happen only where the
    # billing code asks for them.
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables directly, bypassing Alembic (tests, local SQLite)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def open_database(
    database_url: str | None = None,
) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory for a one-off job and dispose the engine after."""
    engine = create_engine(database_url)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()
