"""Work item SQLAlchemy models."""

import enum
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.client import Client
    from src.models.payment import PaymentEntry


class WorkStatus(enum.Enum):
    """Lifecycle status of a work item.

    Status only advances PENDING -> COMPLETED -> FINAL_COMPLETED.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FINAL_COMPLETED = "final_completed"


class WorkItem(Base, TimestampMixin):
    """A single billable unit of work performed for a client.

    There is deliberately no "payment received" column: whether a work is
    fully paid is always derived from its payment entries.
    """

    __tablename__ = "works"
    __table_args__ = (CheckConstraint("fees >= 0", name="ck_works_fees_non_negative"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    purpose: Mapped[str] = mapped_column(String(500), nullable=False)
    fees: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0.00"))
    status: Mapped[WorkStatus] = mapped_column(
        Enum(WorkStatus, name="work_status", values_callable=lambda e: [m.value for m in e]),
        default=WorkStatus.PENDING,
        nullable=False,
        index=True,
    )
    completion_date: Mapped[datetime | None] = mapped_column()

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="works")
    payments: Mapped[list["PaymentEntry"]] = relationship(
        back_populates="work",
        passive_deletes=True,
        order_by="PaymentEntry.payment_date",
    )
