"""History snapshot writer.

Snapshots are denormalized copies of a work's final state. They reference
the original work and client by plain id only and survive deletion of
either.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.billing import store
from src.billing.balance import ZERO, to_money
from src.billing.errors import DuplicateSnapshotError, NotFoundError
from src.core.logging import get_logger
from src.models.base import utcnow
from src.models.client import Client
from src.models.history import HistorySnapshot
from src.models.payment import PaymentEntry
from src.models.work import WorkItem, WorkStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class BackfillResult:
    """Outcome of a backfill run."""

    created: int
    skipped: int


def build_snapshot(
    work: WorkItem,
    client: Client,
    payments: Sequence[PaymentEntry],
    finalized_at: datetime,
) -> HistorySnapshot:
    """Copy a work, its client and its ledger into a new snapshot row."""
    ordered = sorted(payments, key=lambda p: (p.payment_date, p.id or 0))
    total_paid = to_money(sum((p.amount for p in ordered), ZERO))
    return HistorySnapshot(
        original_work_id=work.id,
        original_client_id=client.id,
        client_name=client.name,
        client_pan=client.pan,
        work_purpose=work.purpose,
        fees=to_money(work.fees),
        total_paid=total_paid,
        payment_details=[
            {
                "amount": str(to_money(p.amount)),
                "payment_date": p.payment_date.isoformat(),
            }
            for p in ordered
        ],
        completion_date=work.completion_date or finalized_at,
        payment_received_date=finalized_at,
        created_at=utcnow(),
    )


class HistorySnapshotWriter:
    """Writes and reads history snapshots, at most one per work."""

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self._clock = clock

    async def record_completion(
        self,
        work: WorkItem,
        client: Client,
        payments: Sequence[PaymentEntry],
        finalized_at: datetime | None = None,
    ) -> HistorySnapshot:
        """Record the snapshot for a finalized work, exactly once.

        An existing snapshot is returned unchanged, whether it was found by
        the existence check or by the unique constraint rejecting the insert.
        """
        existing = await store.get_snapshot_for_work(self.session, work.id)
        if existing is not None:
            logger.info(
                "history_snapshot_exists", work_id=work.id, snapshot_id=existing.id
            )
            return existing

        snapshot = build_snapshot(work, client, payments, finalized_at or self._clock())
        try:
            await store.insert_snapshot(self.session, snapshot)
        except DuplicateSnapshotError:
            logger.warning("history_snapshot_duplicate_suppressed", work_id=work.id)
            existing = await store.get_snapshot_for_work(self.session, work.id)
            if existing is None:
                raise
            return existing

        logger.info(
            "history_snapshot_created",
            work_id=work.id,
            snapshot_id=snapshot.id,
            total_paid=str(snapshot.total_paid),
            payments=len(snapshot.payment_details),
        )
        return snapshot

    async def exists_for_work(self, work_id: int) -> bool:
        """Whether a snapshot was recorded for the work."""
        return await store.exists_snapshot_for_work(self.session, work_id)

    async def get_snapshot(self, snapshot_id: int) -> HistorySnapshot:
        """Load one snapshot or raise NotFoundError."""
        snapshot = await self.session.get(HistorySnapshot, snapshot_id)
        if snapshot is None:
            raise NotFoundError("history snapshot", snapshot_id)
        return snapshot

    async def list_snapshots(
        self, limit: int | None = None, offset: int = 0
    ) -> tuple[Sequence[HistorySnapshot], int]:
        """Snapshots ordered by most recent completion first, with a total count."""
        total_result = await self.session.execute(select(func.count(HistorySnapshot.id)))
        total = int(total_result.scalar() or 0)

        stmt = select(HistorySnapshot).order_by(
            HistorySnapshot.completion_date.desc(), HistorySnapshot.id.desc()
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt.offset(offset))
        return result.scalars().all(), total

    async def backfill(self) -> BackfillResult:
        """Create snapshots for final_completed works that have none.

        The work's completion date stands in for the payment-received date,
        which was never recorded for these works.
        """
        result = await self.session.execute(
            select(WorkItem)
            .where(WorkItem.status == WorkStatus.FINAL_COMPLETED)
            .options(selectinload(WorkItem.client), selectinload(WorkItem.payments))
            .order_by(WorkItem.id)
        )
        works = result.scalars().all()

        created = 0
        skipped = 0
        for work in works:
            if await self.exists_for_work(work.id):
                skipped += 1
                continue
            received_at = work.completion_date or self._clock()
            await self.record_completion(work, work.client, work.payments, received_at)
            created += 1

        logger.info("history_backfill_finished", created=created, skipped=skipped)
        return BackfillResult(created=created, skipped=skipped)
