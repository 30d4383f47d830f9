"""Work lifecycle operations: creation, status transitions and details.

Every transition locks the work row, re-reads its status and balance inside
the transaction, runs the state machine, and persists with a compare-and-set
on the prior status. Finalization writes the history snapshot in the same
transaction.
"""

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import store
from src.billing.balance import ZERO, is_fully_paid, parse_amount, remaining
from src.billing.errors import (
    AlreadyFinalError,
    FeesLockedError,
    InvalidPurposeError,
    InvalidTransitionError,
    PaymentPendingError,
)
from src.billing.history import HistorySnapshotWriter
from src.billing.state_machine import TransitionNotAllowed, create_state_machine
from src.core.logging import get_logger
from src.models.base import utcnow
from src.models.work import WorkItem, WorkStatus

logger = get_logger(__name__)


def clean_purpose(purpose: str) -> str:
    """Strip surrounding whitespace; a blank purpose is rejected."""
    text = purpose.strip()
    if not text:
        raise InvalidPurposeError()
    return text


class WorkLifecycle:
    """Owns the status of work items."""

    def __init__(
        self,
        session: AsyncSession,
        history: HistorySnapshotWriter | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session = session
        self.history = history or HistorySnapshotWriter(session, clock=clock)
        self._clock = clock

    async def create_work(
        self, client_id: int, purpose: str, fees: object = ZERO
    ) -> WorkItem:
        """Add a pending work item to a client.

        Raises:
            NotFoundError: Client does not exist.
            InvalidAmountError: Fees are negative or not a number.
            InvalidPurposeError: Purpose is blank.
        """
        client = await store.get_client(self.session, client_id)
        work = WorkItem(
            client_id=client.id,
            purpose=clean_purpose(purpose),
            fees=parse_amount(fees, allow_zero=True),
            status=WorkStatus.PENDING,
        )
        self.session.add(work)
        await self.session.flush()
        logger.info("work_created", work_id=work.id, client_id=client.id, fees=str(work.fees))
        return work

    async def get_work(self, work_id: int) -> WorkItem:
        """Load a work item with its current stored state."""
        return await store.load_work(self.session, work_id, refresh=True)

    async def mark_completed(self, work_id: int) -> WorkItem:
        """Move a work from pending to completed.

        Raises:
            NotFoundError: Work does not exist.
            AlreadyFinalError: Work is already final_completed.
            InvalidTransitionError: Work is not pending.
        """
        work = await store.lock_work(self.session, work_id)
        if work.status is WorkStatus.FINAL_COMPLETED:
            raise AlreadyFinalError(work_id)

        prior = work.status
        machine = create_state_machine(work)
        self._trigger(machine.mark_completed, work, WorkStatus.COMPLETED, when=self._clock())
        await self._persist(work, prior)
        return work

    async def finalize(self, work_id: int) -> WorkItem:
        """Move a fully paid work from completed to final_completed.

        The balance is recomputed after the row lock is taken, so a payment
        committed between a caller's ``can_finalize`` check and this call
        is always accounted for.

        Raises:
            NotFoundError: Work does not exist.
            AlreadyFinalError: Work is already final_completed.
            InvalidTransitionError: Work is still pending.
            PaymentPendingError: Part of the fees is unpaid.
        """
        work = await store.lock_work(self.session, work_id)
        if work.status is WorkStatus.FINAL_COMPLETED:
            raise AlreadyFinalError(work_id)

        if work.status is WorkStatus.COMPLETED:
            total_paid = await store.sum_payments(self.session, work_id)
            balance = remaining(work.fees, total_paid)
            if balance != ZERO:
                logger.info(
                    "finalize_rejected_payment_pending",
                    work_id=work_id,
                    remaining_amount=str(balance),
                    total_paid=str(total_paid),
                )
                raise PaymentPendingError(work_id, balance, work.fees, total_paid)

        prior = work.status
        finalized_at = self._clock()
        machine = create_state_machine(work)
        self._trigger(machine.finalize, work, WorkStatus.FINAL_COMPLETED, when=finalized_at)
        await self._persist(work, prior)

        client = await store.get_client(self.session, work.client_id)
        payments = await store.list_payments(self.session, work_id, newest_first=False)
        await self.history.record_completion(work, client, payments, finalized_at)
        return work

    async def can_finalize(self, work_id: int) -> bool:
        """Whether ``finalize`` would currently succeed, from a fresh read."""
        work = await store.load_work(self.session, work_id, refresh=True)
        if work.status is not WorkStatus.COMPLETED:
            return False
        total_paid = await store.sum_payments(self.session, work_id)
        return is_fully_paid(work.fees, total_paid)

    async def change_status(self, work_id: int, target: WorkStatus) -> WorkItem:
        """Apply a requested status by dispatching to the matching transition.

        Raises:
            InvalidTransitionError: Target is pending, or not a forward move.
            AlreadyFinalError: Work is already final_completed.
        """
        if target is WorkStatus.COMPLETED:
            return await self.mark_completed(work_id)
        if target is WorkStatus.FINAL_COMPLETED:
            return await self.finalize(work_id)

        work = await store.load_work(self.session, work_id, refresh=True)
        if work.status is WorkStatus.FINAL_COMPLETED:
            raise AlreadyFinalError(work_id)
        raise InvalidTransitionError(work_id, work.status.value, target.value)

    async def update_details(
        self,
        work_id: int,
        purpose: str | None = None,
        fees: object = None,
    ) -> WorkItem:
        """Edit a work's purpose and fees.

        Raises:
            AlreadyFinalError: Work is final_completed.
            FeesLockedError: Fees change requested after payments exist.
            InvalidAmountError: Fees are negative or not a number.
            InvalidPurposeError: Purpose is blank.
        """
        new_purpose = clean_purpose(purpose) if purpose is not None else None
        work = await store.lock_work(self.session, work_id)
        if work.status is WorkStatus.FINAL_COMPLETED:
            raise AlreadyFinalError(work_id)

        if fees is not None:
            new_fees = parse_amount(fees, allow_zero=True)
            if new_fees != work.fees:
                total_paid = await store.sum_payments(self.session, work_id)
                if total_paid > ZERO:
                    raise FeesLockedError(work_id, total_paid)
                work.fees = new_fees

        if new_purpose is not None:
            work.purpose = new_purpose

        await self.session.flush()
        logger.info("work_updated", work_id=work_id, fees=str(work.fees))
        return work

    def _trigger(
        self,
        event: Callable[..., object],
        work: WorkItem,
        target: WorkStatus,
        **kwargs: object,
    ) -> None:
        current = work.status
        try:
            event(**kwargs)
        except TransitionNotAllowed as exc:
            raise InvalidTransitionError(work.id, current.value, target.value) from exc

    async def _persist(self, work: WorkItem, prior: WorkStatus) -> None:
        """Write the transition, failing if another writer moved the row first."""
        target = work.status
        if await store.save_status(self.session, work, expected=prior):
            return

        current = await store.load_work(self.session, work.id, refresh=True)
        logger.warning(
            "work_transition_conflict",
            work_id=work.id,
            expected_status=prior.value,
            current_status=current.status.value,
        )
        if current.status is WorkStatus.FINAL_COMPLETED:
            raise AlreadyFinalError(work.id)
        raise InvalidTransitionError(work.id, current.status.value, target.value)