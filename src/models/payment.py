"""Payment ledger SQLAlchemy model."""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, utcnow

if TYPE_CHECKING:
    from src.models.work import WorkItem


class PaymentEntry(Base):
    """An append-only payment collected against a work item.

    Entries are never updated or individually deleted; they go away only
    when their work item is deleted.
    """

    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    work_id: Mapped[int] = mapped_column(
        ForeignKey("works.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_date: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    created_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    # Relationships
    work: Mapped["WorkItem"] = relationship(back_populates="payments")
