"""Client-related SQLAlchemy models."""

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.work import WorkItem


class Client(Base, TimestampMixin):
    """Represents a client for whom billable work is performed."""

    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    pan: Mapped[str | None] = mapped_column(String(20), unique=True)
    aadhaar: Mapped[str | None] = mapped_column(String(20))
    address: Mapped[str | None] = mapped_column(String(500))
    phone: Mapped[str | None] = mapped_column(String(30))

    # Relationships
    works: Mapped[list["WorkItem"]] = relationship(
        back_populates="client",
        passive_deletes=True,
    )
