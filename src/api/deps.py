"""FastAPI dependency injection for database access and engine services."""

from collections.abc import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.billing.deletion import DeletionGuard
from src.billing.history import HistorySnapshotWriter
from src.billing.ledger import PaymentLedger
from src.billing.lifecycle import WorkLifecycle


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_ledger(db: AsyncSession = Depends(get_db)) -> PaymentLedger:
    """Payment ledger bound to the request session."""
    return PaymentLedger(db)


def get_lifecycle(db: AsyncSession = Depends(get_db)) -> WorkLifecycle:
    """Work lifecycle bound to the request session."""
    return WorkLifecycle(db)


def get_history_writer(db: AsyncSession = Depends(get_db)) -> HistorySnapshotWriter:
    """History snapshot writer bound to the request session."""
    return HistorySnapshotWriter(db)


def get_deletion_guard(db: AsyncSession = Depends(get_db)) -> DeletionGuard:
    """Deletion guard bound to the request session."""
    return DeletionGuard(db)
