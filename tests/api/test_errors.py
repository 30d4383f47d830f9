"""Tests for billing error to HTTP status mapping."""

from decimal import Decimal

import pytest

from src.api.errors import status_for
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


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (NotFoundError("work", 1), 404),
        (InvalidAmountError("bad", received="x"), 400),
        (OverpaymentRejectedError(1, Decimal("700.00"), Decimal("500.00")), 400),
        (PaymentPendingError(1, Decimal("200.00"), Decimal("500.00"), Decimal("300.00")), 400),
        (InvalidTransitionError(1, "pending", "final_completed"), 400),
        (AlreadyFinalError(1), 409),
        (FeesLockedError(1, Decimal("100.00")), 409),
        (InvalidPurposeError(), 400),
        (WorkNotDeletableError(1, "pending"), 403),
        (DuplicateSnapshotError(1), 400),
        (BillingError("generic"), 400),
    ],
)
def test_status_for(error: BillingError, expected: int) -> None:
    assert status_for(error) == expected


def test_payment_pending_payload() -> None:
    """The payload tells the caller exactly how much is outstanding."""
    payload = PaymentPendingError(
        5, Decimal("200.00"), Decimal("500.00"), Decimal("300.00")
    ).to_dict()

    assert payload == {
        "code": "payment_pending",
        "detail": "Cannot finalize: 200.00 of 500.00 is still pending (300.00 paid)",
        "work_id": 5,
        "remaining_amount": "200.00",
        "total_fees": "500.00",
        "total_paid": "300.00",
    }


def test_not_found_message() -> None:
    error = NotFoundError("client", 12)
    assert error.message == "Client 12 not found"
    assert error.to_dict()["entity"] == "client"
