"""History snapshot SQLAlchemy model."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, utcnow


class HistorySnapshot(Base):
    """Immutable, denormalized record of a fully paid work item.

    original_work_id and original_client_id are plain columns, not foreign
    keys, so the snapshot survives deletion of the work or its client.
    The UNIQUE constraint on original_work_id is what guarantees at most one
    snapshot per work across processes.
    """

    __tablename__ = "history_snapshots"
    __table_args__ = (
        UniqueConstraint("original_work_id", name="uq_history_snapshots_original_work_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    original_work_id: Mapped[int] = mapped_column(nullable=False)
    original_client_id: Mapped[int | None] = mapped_column()
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_pan: Mapped[str | None] = mapped_column(String(20))
    work_purpose: Mapped[str] = mapped_column(String(500), nullable=False)
    fees: Mapped[Decimal] = mapped_column(nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(nullable=False)
    payment_details: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False, default=list
    )
    completion_date: Mapped[datetime] = mapped_column(nullable=False, index=True)
    payment_received_date: Mapped[datetime] = mapped_column(nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
