"""Payment API endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from src.api.deps import get_ledger
from src.billing.balance import PaymentSummary
from src.billing.ledger import PaymentLedger
from src.models.payment import PaymentEntry

router = APIRouter(prefix="/api/payments", tags=["payments"])


class PaymentCreateRequest(BaseModel):
    """Payload for recording a payment.

    ``amount`` is left as the raw JSON value so that the ledger applies one
    set of amount rules for every caller. ``payment_date`` may carry an
    offset; the ledger stores it as UTC.
    """

    work_id: int = Field(gt=0)
    amount: Any
    payment_date: datetime | None = None


class PaymentResponse(BaseModel):
    """Payment entry response model."""

    id: int
    work_id: int
    amount: Decimal
    payment_date: datetime
    created_at: datetime


class PaymentSummaryResponse(BaseModel):
    """Balance of a work derived from its ledger."""

    work_id: int
    total_fees: Decimal
    total_paid: Decimal
    remaining_amount: Decimal
    can_finalize: bool
    payments: list[PaymentResponse]


class PaymentCreateResponse(BaseModel):
    """Recorded payment with the updated balance."""

    payment: PaymentResponse
    summary: PaymentSummaryResponse
    can_finalize: bool


def _to_payment_response(entry: PaymentEntry) -> PaymentResponse:
    return PaymentResponse(
        id=entry.id,
        work_id=entry.work_id,
        amount=entry.amount,
        payment_date=entry.payment_date,
        created_at=entry.created_at,
    )


def _to_summary_response(summary: PaymentSummary) -> PaymentSummaryResponse:
    return PaymentSummaryResponse(
        work_id=summary.work_id,
        total_fees=summary.total_fees,
        total_paid=summary.total_paid,
        remaining_amount=summary.remaining_amount,
        can_finalize=summary.can_finalize,
        payments=[_to_payment_response(entry) for entry in summary.payments],
    )


@router.post("", response_model=PaymentCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payload: PaymentCreateRequest,
    ledger: PaymentLedger = Depends(get_ledger),
) -> PaymentCreateResponse:
    """Record a payment against a work and return the new balance."""
    entry = await ledger.add_payment(payload.work_id, payload.amount, payload.payment_date)
    summary = await ledger.summary(payload.work_id)
    return PaymentCreateResponse(
        payment=_to_payment_response(entry),
        summary=_to_summary_response(summary),
        can_finalize=summary.can_finalize,
    )


@router.get("/{work_id}", response_model=PaymentSummaryResponse)
async def get_payment_summary(
    work_id: int,
    ledger: PaymentLedger = Depends(get_ledger),
) -> PaymentSummaryResponse:
    """Fees, total paid, remaining balance and payments for a work."""
    return _to_summary_response(await ledger.summary(work_id))
