"""Storage gateway for the billing engine.

The engine reaches the database only through these functions so that row
locking, fresh reads and unique-violation handling are done one way.
"""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing.balance import to_money
from src.billing.errors import DuplicateSnapshotError, NotFoundError
from src.models.base import utcnow
from src.models.client import Client
from src.models.history import HistorySnapshot
from src.models.payment import PaymentEntry
from src.models.work import WorkItem, WorkStatus


async def get_client(session: AsyncSession, client_id: int) -> Client:
    """Load a client or raise NotFoundError."""
    client = await session.get(Client, client_id)
    if client is None:
        raise NotFoundError("client", client_id)
    return client


async def load_work(
    session: AsyncSession, work_id: int, refresh: bool = False
) -> WorkItem:
    """Load a work item or raise NotFoundError.

    Args:
        session: Active session.
        work_id: Work identifier.
        refresh: Re-read the row even if the instance is already in the
            identity map.
    """
    stmt = select(WorkItem).where(WorkItem.id == work_id)
    if refresh:
        stmt = stmt.execution_options(populate_existing=True)
    work = (await session.execute(stmt)).scalar_one_or_none()
    if work is None:
        raise NotFoundError("work", work_id)
    return work


async def lock_work(session: AsyncSession, work_id: int) -> WorkItem:
    """Take the write lock on a work row and return its current state.

    The touch-update is a row lock on PostgreSQL and acquires the database
    write lock on SQLite, so everything read afterwards in this transaction
    is serialized against other payment inserts and status changes for the
    same work.
    """
    result = await session.execute(
        update(WorkItem)
        .where(WorkItem.id == work_id)
        .values(updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("work", work_id)

    stmt = (
        select(WorkItem)
        .where(WorkItem.id == work_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one()


async def save_status(
    session: AsyncSession, work: WorkItem, expected: WorkStatus
) -> bool:
    """Persist a status change only if the stored status is still ``expected``.

    Returns:
        True if this call moved the row, False if another writer got there
        first. On success the instance is refreshed from the database.
    """
    result = await session.execute(
        update(WorkItem)
        .where(WorkItem.id == work.id, WorkItem.status == expected)
        .values(
            status=work.status,
            completion_date=work.completion_date,
            updated_at=utcnow(),
        )
        # The pending change on ``work`` must not be flushed ahead of the
        # compare-and-set, or the WHERE clause would never match.
        .execution_options(synchronize_session=False, autoflush=False)
    )
    if result.rowcount != 1:
        return False
    await session.refresh(work)
    return True


async def insert_payment(
    session: AsyncSession,
    work_id: int,
    amount: Decimal,
    payment_date: datetime | None = None,
) -> PaymentEntry:
    """Append one payment entry to the ledger."""
    now = utcnow()
    entry = PaymentEntry(
        work_id=work_id,
        amount=amount,
        payment_date=payment_date or now,
        created_at=now,
    )
    session.add(entry)
    await session.flush()
    return entry


async def sum_payments(session: AsyncSession, work_id: int) -> Decimal:
    """Total of all payment entries for a work; zero when there are none."""
    result = await session.execute(
        select(func.coalesce(func.sum(PaymentEntry.amount), 0)).where(
            PaymentEntry.work_id == work_id
        )
    )
    return to_money(result.scalar_one())


async def list_payments(
    session: AsyncSession, work_id: int, newest_first: bool = True
) -> Sequence[PaymentEntry]:
    """Payment entries for a work, ordered by payment date."""
    if newest_first:
        ordering = (PaymentEntry.payment_date.desc(), PaymentEntry.id.desc())
    else:
        ordering = (PaymentEntry.payment_date.asc(), PaymentEntry.id.asc())
    result = await session.execute(
        select(PaymentEntry).where(PaymentEntry.work_id == work_id).order_by(*ordering)
    )
    return result.scalars().all()


async def get_snapshot_for_work(
    session: AsyncSession, work_id: int
) -> HistorySnapshot | None:
    """The snapshot recorded for a work, if any."""
    result = await session.execute(
        select(HistorySnapshot).where(HistorySnapshot.original_work_id == work_id)
    )
    return result.scalar_one_or_none()


async def exists_snapshot_for_work(session: AsyncSession, work_id: int) -> bool:
    """True if a snapshot has been recorded for the work."""
    result = await session.execute(
        select(func.count(HistorySnapshot.id)).where(
            HistorySnapshot.original_work_id == work_id
        )
    )
    return int(result.scalar_one()) > 0


async def insert_snapshot(session: AsyncSession, snapshot: HistorySnapshot) -> None:
    """Insert a snapshot inside a savepoint.

    Raises:
        DuplicateSnapshotError: If the unique constraint on
            original_work_id rejected the row. The surrounding transaction
            stays usable.
    """
    try:
        async with session.begin_nested():
            session.add(snapshot)
    except IntegrityError:
        if await exists_snapshot_for_work(session, snapshot.original_work_id):
            raise DuplicateSnapshotError(snapshot.original_work_id) from None
        raise


async def delete_snapshot(session: AsyncSession, snapshot_id: int) -> None:
    """Delete one snapshot by id or raise NotFoundError."""
    result = await session.execute(
        delete(HistorySnapshot)
        .where(HistorySnapshot.id == snapshot_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("history snapshot", snapshot_id)
