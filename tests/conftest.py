"""Pytest configuration and shared fixtures for tests."""

import os
from collections.abc import AsyncGenerator
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.api.deps import get_db
from src.core.database import create_engine, create_schema, create_session_factory
from src.main import app
from src.models.client import Client
from src.models.work import WorkItem, WorkStatus


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests.

    Returns:
        Backend name string.
    """
    return "asyncio"


@pytest_asyncio.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create sqlite-backed session factory with the full schema."""
    engine = create_engine("sqlite+aiosqlite:///:memory:")
    await create_schema(engine)

    factory = create_session_factory(engine)
    app.state.async_session = factory
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Single session for engine-level tests."""
    async with session_factory() as db:
        yield db


@pytest_asyncio.fixture
async def api_client(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient, None]:
    """Create API client with DB dependency override."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()


async def _add_client(
    db: AsyncSession, name: str = "Ravi Kumar", pan: str | None = None
) -> Client:
    client = Client(name=name, pan=pan)
    db.add(client)
    await db.commit()
    return client


async def _add_work(
    db: AsyncSession,
    client: Client,
    fees: str = "1000.00",
    purpose: str = "ITR filing",
    status: WorkStatus = WorkStatus.PENDING,
) -> WorkItem:
    work = WorkItem(client_id=client.id, purpose=purpose, fees=Decimal(fees), status=status)
    db.add(work)
    await db.commit()
    return work


@pytest.fixture
def add_client():
    """Insert and commit a client: ``await add_client(db, name, pan)``."""
    return _add_client


@pytest.fixture
def add_work():
    """Insert and commit a work: ``await add_work(db, client, fees, ...)``."""
    return _add_work
