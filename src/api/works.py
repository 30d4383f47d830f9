"""Work item API endpoints."""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db, get_deletion_guard, get_ledger, get_lifecycle
from src.billing.balance import ZERO, remaining, to_money
from src.billing.deletion import DeletionGuard
from src.billing.ledger import PaymentLedger
from src.billing.lifecycle import WorkLifecycle
from src.models.payment import PaymentEntry
from src.models.work import WorkItem, WorkStatus

router = APIRouter(prefix="/api/works", tags=["works"])


class WorkCreateRequest(BaseModel):
    """Payload for adding a work to a client."""

    client_id: int = Field(gt=0)
    purpose: str = Field(min_length=1, max_length=500)
    fees: Decimal = Field(default=ZERO, ge=0)


class WorkUpdateRequest(BaseModel):
    """Payload for editing a work's details."""

    purpose: str | None = Field(default=None, min_length=1, max_length=500)
    fees: Decimal | None = Field(default=None, ge=0)


class WorkStatusUpdateRequest(BaseModel):
    """Payload for transitioning work status."""

    status: WorkStatus


class WorkResponse(BaseModel):
    """Work response model with its derived balance."""

    id: int
    client_id: int
    purpose: str
    fees: Decimal
    status: str
    completion_date: datetime | None
    total_paid: Decimal
    remaining_amount: Decimal
    can_finalize: bool
    created_at: datetime
    updated_at: datetime | None


class WorkDeleteResponse(BaseModel):
    """Result of deleting a work."""

    work_id: int
    payments_deleted: int


def to_work_response(work: WorkItem, total_paid: Decimal) -> WorkResponse:
    """Map a work and its paid total to the response model."""
    balance = remaining(work.fees, total_paid)
    return WorkResponse(
        id=work.id,
        client_id=work.client_id,
        purpose=work.purpose,
        fees=work.fees,
        status=work.status.value,
        completion_date=work.completion_date,
        total_paid=total_paid,
        remaining_amount=balance,
        can_finalize=work.status is WorkStatus.COMPLETED and balance == ZERO,
        created_at=work.created_at,
        updated_at=work.updated_at,
    )


async def to_work_responses(
    db: AsyncSession, works: Sequence[WorkItem]
) -> list[WorkResponse]:
    """Map works to responses, summing their ledgers in one query."""
    if not works:
        return []
    result = await db.execute(
        select(PaymentEntry.work_id, func.sum(PaymentEntry.amount))
        .where(PaymentEntry.work_id.in_([work.id for work in works]))
        .group_by(PaymentEntry.work_id)
    )
    totals = {work_id: to_money(total) for work_id, total in result.all()}
    return [to_work_response(work, totals.get(work.id, ZERO)) for work in works]


async def _work_response(ledger: PaymentLedger, work: WorkItem) -> WorkResponse:
    return to_work_response(work, await ledger.total_paid(work.id))


@router.post("", response_model=WorkResponse, status_code=status.HTTP_201_CREATED)
async def create_work(
    payload: WorkCreateRequest,
    lifecycle: WorkLifecycle = Depends(get_lifecycle),
) -> WorkResponse:
    """Add a pending work to a client."""
    work = await lifecycle.create_work(payload.client_id, payload.purpose, payload.fees)
    return to_work_response(work, ZERO)


@router.get("", response_model=list[WorkResponse])
async def list_works(
    status_filter: WorkStatus | None = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> list[WorkResponse]:
    """List all works, newest first, optionally filtered by status."""
    stmt = select(WorkItem).order_by(WorkItem.created_at.desc(), WorkItem.id.desc())
    if status_filter is not None:
        stmt = stmt.where(WorkItem.status == status_filter)
    result = await db.execute(stmt)
    return await to_work_responses(db, result.scalars().all())


@router.get("/{work_id}", response_model=WorkResponse)
async def get_work(
    work_id: int,
    lifecycle: WorkLifecycle = Depends(get_lifecycle),
    ledger: PaymentLedger = Depends(get_ledger),
) -> WorkResponse:
    """Get a work with its balance."""
    work = await lifecycle.get_work(work_id)
    return await _work_response(ledger, work)


@router.patch("/{work_id}", response_model=WorkResponse)
async def update_work(
    work_id: int,
    payload: WorkUpdateRequest,
    lifecycle: WorkLifecycle = Depends(get_lifecycle),
    ledger: PaymentLedger = Depends(get_ledger),
) -> WorkResponse:
    """Edit purpose and fees. Fees are fixed once payments exist."""
    updates = payload.model_dump(exclude_unset=True)
    work = await lifecycle.update_details(
        work_id,
        purpose=updates.get("purpose"),
        fees=updates.get("fees"),
    )
    return await _work_response(ledger, work)


@router.patch("/{work_id}/status", response_model=WorkResponse)
async def update_work_status(
    work_id: int,
    payload: WorkStatusUpdateRequest,
    lifecycle: WorkLifecycle = Depends(get_lifecycle),
    ledger: PaymentLedger = Depends(get_ledger),
) -> WorkResponse:
    """Transition work status using state-machine constraints."""
    work = await lifecycle.change_status(work_id, payload.status)
    return await _work_response(ledger, work)


@router.delete("/{work_id}", response_model=WorkDeleteResponse)
async def delete_work(
    work_id: int,
    guard: DeletionGuard = Depends(get_deletion_guard),
) -> WorkDeleteResponse:
    """Delete a final completed work. Its history snapshot is kept."""
    payments_deleted = await guard.delete_work(work_id)
    return WorkDeleteResponse(work_id=work_id, payments_deleted=payments_deleted)
