"""Work lifecycle and payment reconciliation engine."""

from src.billing.balance import PaymentSummary, parse_amount, remaining
from src.billing.deletion import ClientDeletion, DeletionGuard
from src.billing.errors import (
    AlreadyFinalError,
    BillingError,
    DuplicateSnapshotError,
    FeesLockedError,
    InvalidAmountError,
    InvalidPurposeError,
    InvalidTransitionError,
    NotFoundError,
    OverpaymentRejectedError,
    PaymentPendingError,
    WorkNotDeletableError,
)
from src.billing.history import BackfillResult, HistorySnapshotWriter
from src.billing.ledger import PaymentLedger
from src.billing.lifecycle import WorkLifecycle
from src.billing.state_machine import WorkStateMachine, create_state_machine

__all__ = [
    # Balance
    "PaymentSummary",
    "parse_amount",
    "remaining",
    # Components
    "PaymentLedger",
    "WorkLifecycle",
    "WorkStateMachine",
    "create_state_machine",
    "HistorySnapshotWriter",
    "BackfillResult",
    "DeletionGuard",
    "ClientDeletion",
    # Errors
    "BillingError",
    "NotFoundError",
    "InvalidAmountError",
    "InvalidPurposeError",
    "OverpaymentRejectedError",
    "InvalidTransitionError",
    "PaymentPendingError",
    "AlreadyFinalError",
    "WorkNotDeletableError",
    "FeesLockedError",
    "DuplicateSnapshotError",
]
