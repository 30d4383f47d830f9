"""Engine option and one-off database helper tests."""

import pytest
from sqlalchemy import text

from src.core.config import settings
from src.core.database import create_schema, engine_options, open_database


def test_sqlite_engine_has_no_pool_sizing() -> None:
    options = engine_options("sqlite+aiosqlite:///:memory:")
    assert "pool_size" not in options
    assert options["echo"] == settings.debug


def test_postgres_engine_uses_configured_pool() -> None:
    options = engine_options("postgresql+asyncpg://user@localhost:5432/worklog")
    assert options["pool_size"] == settings.database_pool_size
    assert options["max_overflow"] == 0
    assert options["pool_pre_ping"] is True


@pytest.mark.asyncio
async def test_open_database_yields_working_factory(tmp_path) -> None:
    url = f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}"
    async with open_database(url) as session_factory:
        async with session_factory() as session:
            await create_schema(session.bind)
            result = await session.execute(text("SELECT COUNT(*) FROM works"))
            assert result.scalar_one() == 0
