"""History snapshot API endpoints."""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from src.api.deps import get_deletion_guard, get_history_writer
from src.billing.deletion import DeletionGuard
from src.billing.history import HistorySnapshotWriter
from src.models.history import HistorySnapshot

router = APIRouter(prefix="/api/history", tags=["history"])


class PaymentDetail(BaseModel):
    """One ledger entry as copied into a snapshot."""

    amount: Decimal
    payment_date: datetime


class HistoryResponse(BaseModel):
    """History snapshot response model."""

    id: int
    original_work_id: int
    original_client_id: int | None
    client_name: str
    client_pan: str | None
    work_purpose: str
    fees: Decimal
    total_paid: Decimal
    payment_details: list[PaymentDetail]
    completion_date: datetime
    payment_received_date: datetime
    created_at: datetime


class HistoryListResponse(BaseModel):
    """Paginated history list response."""

    items: list[HistoryResponse]
    total: int
    limit: int
    offset: int


class HistoryDeleteResponse(BaseModel):
    """Result of deleting a snapshot."""

    deleted_history_id: int


def _to_history_response(snapshot: HistorySnapshot) -> HistoryResponse:
    """Map SQLAlchemy snapshot model to response model."""
    return HistoryResponse(
        id=snapshot.id,
        original_work_id=snapshot.original_work_id,
        original_client_id=snapshot.original_client_id,
        client_name=snapshot.client_name,
        client_pan=snapshot.client_pan,
        work_purpose=snapshot.work_purpose,
        fees=snapshot.fees,
        total_paid=snapshot.total_paid,
        payment_details=[PaymentDetail(**detail) for detail in snapshot.payment_details],
        completion_date=snapshot.completion_date,
        payment_received_date=snapshot.payment_received_date,
        created_at=snapshot.created_at,
    )


@router.get("", response_model=HistoryListResponse)
async def list_history(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    writer: HistorySnapshotWriter = Depends(get_history_writer),
) -> HistoryListResponse:
    """List snapshots, most recently completed first."""
    snapshots, total = await writer.list_snapshots(limit=limit, offset=offset)
    return HistoryListResponse(
        items=[_to_history_response(snapshot) for snapshot in snapshots],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{history_id}", response_model=HistoryResponse)
async def get_history(
    history_id: int,
    writer: HistorySnapshotWriter = Depends(get_history_writer),
) -> HistoryResponse:
    """Get one snapshot by ID."""
    return _to_history_response(await writer.get_snapshot(history_id))


@router.delete("/{history_id}", response_model=HistoryDeleteResponse)
async def delete_history(
    history_id: int,
    guard: DeletionGuard = Depends(get_deletion_guard),
) -> HistoryDeleteResponse:
    """Delete a snapshot. Works and clients are not affected."""
    await guard.delete_history_snapshot(history_id)
    return HistoryDeleteResponse(deleted_history_id=history_id)
