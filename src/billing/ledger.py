"""Append-only payment ledger."""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.billing import store
from src.billing.balance import PaymentSummary, parse_amount, remaining
from src.billing.errors import OverpaymentRejectedError
from src.core.logging import get_logger
from src.models.base import as_naive_utc
from src.models.payment import PaymentEntry
from src.models.work import WorkStatus

logger = get_logger(__name__)


class PaymentLedger:
    """Records payments against work items and reports balances.

    The overpayment check and the insert run in the caller's transaction
    after the work row has been locked, so two concurrent payments on the
    same work cannot both pass validation.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def add_payment(
        self,
        work_id: int,
        amount: object,
        payment_date: datetime | None = None,
    ) -> PaymentEntry:
        """Record a payment.

        Args:
            work_id: Work the payment is collected for.
            amount: Payment amount; anything parse_amount accepts.
            payment_date: When the payment was received. Defaults to now;
                an offset-aware value is stored as naive UTC.

        Returns:
            The persisted payment entry.

        Raises:
            InvalidAmountError: Amount is not a finite positive number.
            NotFoundError: Work does not exist.
            OverpaymentRejectedError: Amount exceeds the remaining balance.
        """
        value = parse_amount(amount)
        work = await store.lock_work(self.session, work_id)
        total_paid = await store.sum_payments(self.session, work_id)
        balance = remaining(work.fees, total_paid)

        if value > balance:
            logger.warning(
                "payment_rejected_overpayment",
                work_id=work_id,
                amount=str(value),
                remaining_amount=str(balance),
            )
            raise OverpaymentRejectedError(work_id, value, balance)

        if payment_date is not None:
            payment_date = as_naive_utc(payment_date)
        entry = await store.insert_payment(self.session, work_id, value, payment_date)
        logger.info(
            "payment_added",
            work_id=work_id,
            payment_id=entry.id,
            amount=str(value),
            remaining_amount=str(balance - value),
        )
        return entry

    async def total_paid(self, work_id: int) -> Decimal:
        """Sum of all payments for the work; zero if none."""
        return await store.sum_payments(self.session, work_id)

    async def list_payments(self, work_id: int) -> Sequence[PaymentEntry]:
        """Payments for the work, most recent first."""
        return await store.list_payments(self.session, work_id)

    async def summary(self, work_id: int) -> PaymentSummary:
        """Fees, paid total, remaining balance and payments for a work.

        Raises:
            NotFoundError: Work does not exist.
        """
        work = await store.load_work(self.session, work_id, refresh=True)
        total_paid = await store.sum_payments(self.session, work_id)
        balance = remaining(work.fees, total_paid)
        payments = await store.list_payments(self.session, work_id)
        return PaymentSummary(
            work_id=work.id,
            total_fees=work.fees,
            total_paid=total_paid,
            remaining_amount=balance,
            can_finalize=work.status is WorkStatus.COMPLETED and balance == 0,
            payments=list(payments),
        )
