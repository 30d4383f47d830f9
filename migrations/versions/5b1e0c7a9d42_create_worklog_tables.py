"""create_worklog_tables

Revision ID: 5b1e0c7a9d42
Revises:
Create Date: 2026-09-28 10:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7a9d42'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

work_status = sa.Enum(
    "pending", "completed", "final_completed", name="work_status"
)


def upgrade() -> None:
    """Create clients, works, payments, history_snapshots and users."""
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("pan", sa.String(length=20), nullable=True),
        sa.Column("aadhaar", sa.String(length=20), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("pan"),
    )

    op.create_table(
        "works",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("client_id", sa.Integer(), nullable=False),
        sa.Column("purpose", sa.String(length=500), nullable=False),
        sa.Column("fees", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("status", work_status, nullable=False),
        sa.Column("completion_date", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("fees >= 0", name="ck_works_fees_non_negative"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_works_client_id", "works", ["client_id"])
    op.create_index("ix_works_status", "works", ["status"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("work_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("payment_date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.ForeignKeyConstraint(["work_id"], ["works.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_payments_work_id", "payments", ["work_id"])

    # No foreign keys: snapshots outlive their work and client.
    op.create_table(
        "history_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("original_work_id", sa.Integer(), nullable=False),
        sa.Column("original_client_id", sa.Integer(), nullable=True),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("client_pan", sa.String(length=20), nullable=True),
        sa.Column("work_purpose", sa.String(length=500), nullable=False),
        sa.Column("fees", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("total_paid", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column(
            "payment_details",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("completion_date", sa.DateTime(), nullable=False),
        sa.Column("payment_received_date", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "original_work_id", name="uq_history_snapshots_original_work_id"
        ),
    )
    op.create_index(
        "ix_history_snapshots_completion_date",
        "history_snapshots",
        ["completion_date"],
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_admin", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("username"),
    )


def downgrade() -> None:
    """Drop all worklog tables and the work_status enum."""
    op.drop_table("users")
    op.drop_index("ix_history_snapshots_completion_date", table_name="history_snapshots")
    op.drop_table("history_snapshots")
    op.drop_index("ix_payments_work_id", table_name="payments")
    op.drop_table("payments")
    op.drop_index("ix_works_status", table_name="works")
    op.drop_index("ix_works_client_id", table_name="works")
    op.drop_table("works")
    op.drop_table("clients")
    work_status.drop(op.get_bind(), checkfirst=True)
