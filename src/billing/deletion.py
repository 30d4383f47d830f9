"""Deletion rules for works, clients and history snapshots.

Payment entries are removed explicitly before their works, and works before
their client, so the cascade does not depend on the database enforcing
foreign keys. History snapshots are never part of a cascade.
"""

from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import store
from src.billing.errors import WorkNotDeletableError
from src.core.logging import get_logger
from src.models.client import Client
from src.models.payment import PaymentEntry
from src.models.work import WorkItem, WorkStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClientDeletion:
    """Counts of rows removed with a client."""

    client_id: int
    works_deleted: int
    payments_deleted: int


class DeletionGuard:
    """Enforces which entities may be removed, and in which state."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def delete_work(self, work_id: int) -> int:
        """Delete a final_completed work and its payments.

        Returns:
            Number of payment entries removed with the work.

        Raises:
            NotFoundError: Work does not exist.
            WorkNotDeletableError: Work is pending or completed.
        """
        work = await store.lock_work(self.session, work_id)
        if work.status is not WorkStatus.FINAL_COMPLETED:
            raise WorkNotDeletableError(work_id, work.status.value)

        payments_deleted = await self._count_payments(PaymentEntry.work_id == work_id)
        await self.session.execute(
            delete(PaymentEntry)
            .where(PaymentEntry.work_id == work_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(work)
        await self.session.flush()

        logger.info("work_deleted", work_id=work_id, payments_deleted=payments_deleted)
        return payments_deleted

    async def delete_client(self, client_id: int) -> ClientDeletion:
        """Delete a client with all of its works and their payments.

        Works are removed regardless of status; this is the only path by
        which an unfinished work can disappear.

        Raises:
            NotFoundError: Client does not exist.
        """
        client = await store.get_client(self.session, client_id)
        work_ids = select(WorkItem.id).where(WorkItem.client_id == client_id)

        works_result = await self.session.execute(
            select(func.count(WorkItem.id)).where(WorkItem.client_id == client_id)
        )
        works_deleted = int(works_result.scalar() or 0)
        payments_deleted = await self._count_payments(PaymentEntry.work_id.in_(work_ids))

        await self.session.execute(
            delete(PaymentEntry)
            .where(PaymentEntry.work_id.in_(work_ids))
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(WorkItem)
            .where(WorkItem.client_id == client_id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(Client)
            .where(Client.id == client_id)
            .execution_options(synchronize_session=False)
        )
        self.session.expunge(client)

        logger.info(
            "client_deleted",
            client_id=client_id,
            works_deleted=works_deleted,
            payments_deleted=payments_deleted,
        )
        return ClientDeletion(
            client_id=client_id,
            works_deleted=works_deleted,
            payments_deleted=payments_deleted,
        )

    async def delete_history_snapshot(self, snapshot_id: int) -> None:
        """Delete a snapshot. Works and clients are unaffected.

        Raises:
            NotFoundError: Snapshot does not exist.
        """
        await store.delete_snapshot(self.session, snapshot_id)
        logger.info("history_snapshot_deleted", snapshot_id=snapshot_id)

    async def _count_payments(self, criterion: object) -> int:
        result = await self.session.execute(
            select(func.count(PaymentEntry.id)).where(criterion)
        )
        return int(result.scalar() or 0)
