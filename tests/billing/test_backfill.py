"""Tests for the history backfill job."""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import select

from src.billing.backfill import run_backfill
from src.models.history import HistorySnapshot
from src.models.payment import PaymentEntry
from src.models.work import WorkStatus


@pytest.mark.asyncio
async def test_backfill_creates_missing_snapshots_once(
    session_factory, add_client, add_work
) -> None:
    """Final works without a snapshot get one; a second run changes nothing."""
    async with session_factory() as db:
        client = await add_client(db, name="Legacy Client", pan="LEGCY0001A")
        legacy = await add_work(
            db, client, fees="800.00", purpose="Old audit", status=WorkStatus.FINAL_COMPLETED
        )
        legacy.completion_date = datetime(2025, 12, 31)
        db.add_all(
            [
                PaymentEntry(
                    work_id=legacy.id,
                    amount=Decimal("300.00"),
                    payment_date=datetime(2025, 11, 1),
                ),
                PaymentEntry(
                    work_id=legacy.id,
                    amount=Decimal("500.00"),
                    payment_date=datetime(2025, 12, 15),
                ),
            ]
        )
        await add_work(db, client, purpose="Still open", status=WorkStatus.COMPLETED)
        await db.commit()
        legacy_id = legacy.id

    first = await run_backfill(session_factory)
    second = await run_backfill(session_factory)

    assert (first.created, first.skipped) == (1, 0)
    assert (second.created, second.skipped) == (0, 1)

    async with session_factory() as db:
        snapshots = (await db.execute(select(HistorySnapshot))).scalars().all()
    assert len(snapshots) == 1
    snapshot = snapshots[0]
    assert snapshot.original_work_id == legacy_id
    assert snapshot.client_pan == "LEGCY0001A"
    assert snapshot.total_paid == Decimal("800.00")
    assert snapshot.payment_received_date == datetime(2025, 12, 31)
    assert [d["amount"] for d in snapshot.payment_details] == ["300.00", "500.00"]
