"""Typed errors raised by the billing engine.

Every error carries a machine-readable ``code`` and the structured values a
caller needs to render an actionable message. The HTTP layer maps codes to
status codes; nothing here knows about HTTP.

    BillingError
    +-- NotFoundError
    +-- InvalidAmountError
    +-- OverpaymentRejectedError
    +-- InvalidTransitionError
    +-- PaymentPendingError
    +-- AlreadyFinalError
    +-- WorkNotDeletableError
    +-- FeesLockedError
    +-- InvalidPurposeError
    +-- DuplicateSnapshotError   (internal to the history writer)
"""

from decimal import Decimal
from typing import Any


class BillingError(Exception):
    """Base class for recoverable billing errors."""

    code = "billing_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Structured payload for API responses and log events."""
        return {"code": self.code, "detail": self.message}


class NotFoundError(BillingError):
    """Referenced work, client, payment or snapshot does not exist."""

    code = "not_found"

    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity.capitalize()} {entity_id} not found")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "entity": self.entity, "id": self.entity_id}


class InvalidAmountError(BillingError):
    """Amount is not a finite number, or not strictly positive."""

    code = "invalid_amount"

    def __init__(self, message: str, received: object = None) -> None:
        self.received = received
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.received is not None:
            payload["received"] = str(self.received)
        return payload


class OverpaymentRejectedError(BillingError):
    """Payment would push the total paid above the work's fees."""

    code = "overpayment_rejected"

    def __init__(self, work_id: int, amount: Decimal, remaining: Decimal) -> None:
        self.work_id = work_id
        self.amount = amount
        self.remaining = remaining
        super().__init__(
            f"Payment amount ({amount:.2f}) exceeds remaining balance ({remaining:.2f})"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "work_id": self.work_id,
            "amount": str(self.amount),
            "remaining_amount": str(self.remaining),
        }


class InvalidTransitionError(BillingError):
    """Requested status change is not a legal forward move."""

    code = "invalid_transition"

    def __init__(self, work_id: int, current: str, target: str) -> None:
        self.work_id = work_id
        self.current = current
        self.target = target
        super().__init__(f"Invalid transition from {current} to {target}")

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "work_id": self.work_id,
            "current_status": self.current,
            "requested_status": self.target,
        }


class PaymentPendingError(BillingError):
    """Finalize attempted while part of the fees is still unpaid."""

    code = "payment_pending"

    def __init__(
        self,
        work_id: int,
        remaining: Decimal,
        fees: Decimal,
        total_paid: Decimal,
    ) -> None:
        self.work_id = work_id
        self.remaining = remaining
        self.fees = fees
        self.total_paid = total_paid
        super().__init__(
            f"Cannot finalize: {remaining:.2f} of {fees:.2f} is still pending "
            f"({total_paid:.2f} paid)"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "work_id": self.work_id,
            "remaining_amount": str(self.remaining),
            "total_fees": str(self.fees),
            "total_paid": str(self.total_paid),
        }


class AlreadyFinalError(BillingError):
    """Work is already final_completed; nothing further can change."""

    code = "already_final"

    def __init__(self, work_id: int) -> None:
        self.work_id = work_id
        super().__init__(f"Work {work_id} is already final completed")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "work_id": self.work_id}


class WorkNotDeletableError(BillingError):
    """Only final_completed works may be deleted directly."""

    code = "work_not_deletable"

    def __init__(self, work_id: int, status: str) -> None:
        self.work_id = work_id
        self.status = status
        super().__init__(
            "Only final completed works can be deleted; "
            f"work {work_id} is {status}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "work_id": self.work_id, "status": self.status}


class FeesLockedError(BillingError):
    """Fees cannot change once payments have been recorded."""

    code = "fees_locked"

    def __init__(self, work_id: int, total_paid: Decimal) -> None:
        self.work_id = work_id
        self.total_paid = total_paid
        super().__init__(
            f"Fees of work {work_id} are fixed: {total_paid:.2f} has already been paid"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "work_id": self.work_id,
            "total_paid": str(self.total_paid),
        }


class InvalidPurposeError(BillingError):
    """Work purpose is blank once surrounding whitespace is removed."""

    code = "invalid_purpose"

    def __init__(self) -> None:
        super().__init__("Work purpose must not be blank")


class DuplicateSnapshotError(BillingError):
    """A history snapshot already exists for the work.

    Raised by the storage gateway on the unique constraint violation and
    always recovered inside the history writer.
    """

    code = "duplicate_snapshot"

    def __init__(self, work_id: int) -> None:
        self.work_id = work_id
        super().__init__(f"History snapshot already exists for work {work_id}")
