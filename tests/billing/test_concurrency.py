"""Concurrency tests against a file-backed SQLite database.

Each task uses its own session and connection, so the work-row lock taken
by the lifecycle and the ledger is what serializes them.
"""

import asyncio
from collections.abc import AsyncGenerator
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.billing.errors import AlreadyFinalError, OverpaymentRejectedError
from src.billing.ledger import PaymentLedger
from src.billing.lifecycle import WorkLifecycle
from src.core.database import create_engine, create_schema, create_session_factory
from src.models.client import Client
from src.models.history import HistorySnapshot
from src.models.payment import PaymentEntry
from src.models.work import WorkItem, WorkStatus

CONCURRENT_CALLS = 5


@pytest_asyncio.fixture
async def file_session_factory(
    tmp_path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a SQLite file so that sessions do not share a connection."""
    engine = create_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'worklog.db'}",
        connect_args={"timeout": 30},
    )
    await create_schema(engine)
    try:
        yield create_session_factory(engine)
    finally:
        await engine.dispose()


async def _seed_work(
    factory: async_sessionmaker[AsyncSession], fees: str, status: WorkStatus
) -> int:
    async with factory() as db:
        client = Client(name="Concurrent Client")
        db.add(client)
        await db.flush()
        work = WorkItem(client_id=client.id, purpose="Audit", fees=Decimal(fees), status=status)
        db.add(work)
        await db.commit()
        return work.id


async def _in_transaction(factory, operation):
    """Run one operation in its own session, committing on success."""
    async with factory() as db:
        try:
            result = await operation(db)
            await db.commit()
            return result
        except Exception:
            await db.rollback()
            raise


@pytest.mark.asyncio
async def test_concurrent_finalize_creates_exactly_one_snapshot(
    file_session_factory,
) -> None:
    work_id = await _seed_work(file_session_factory, "0.00", WorkStatus.COMPLETED)

    async def finalize(db: AsyncSession) -> WorkStatus:
        work = await WorkLifecycle(db).finalize(work_id)
        return work.status

    results = await asyncio.gather(
        *(_in_transaction(file_session_factory, finalize) for _ in range(CONCURRENT_CALLS)),
        return_exceptions=True,
    )

    successes = [r for r in results if r is WorkStatus.FINAL_COMPLETED]
    already_final = [r for r in results if isinstance(r, AlreadyFinalError)]
    assert len(successes) >= 1
    assert len(successes) + len(already_final) == CONCURRENT_CALLS

    async with file_session_factory() as db:
        count = await db.execute(
            select(func.count(HistorySnapshot.id)).where(
                HistorySnapshot.original_work_id == work_id
            )
        )
        assert count.scalar_one() == 1
        work = await db.get(WorkItem, work_id)
        assert work.status is WorkStatus.FINAL_COMPLETED


@pytest.mark.asyncio
async def test_concurrent_payments_cannot_overpay(file_session_factory) -> None:
    """Five 300.00 payments against fees of 1000.00: exactly three succeed."""
    work_id = await _seed_work(file_session_factory, "1000.00", WorkStatus.COMPLETED)

    async def pay(db: AsyncSession) -> PaymentEntry:
        return await PaymentLedger(db).add_payment(work_id, "300.00")

    results = await asyncio.gather(
        *(_in_transaction(file_session_factory, pay) for _ in range(CONCURRENT_CALLS)),
        return_exceptions=True,
    )

    accepted = [r for r in results if isinstance(r, PaymentEntry)]
    rejected = [r for r in results if isinstance(r, OverpaymentRejectedError)]
    assert len(accepted) == 3
    assert len(rejected) == 2
    assert all(r.remaining == Decimal("100.00") for r in rejected)

    async with file_session_factory() as db:
        total = await PaymentLedger(db).total_paid(work_id)
    assert total == Decimal("900.00")
