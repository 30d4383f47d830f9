"""Create history snapshots for final_completed works that have none.

Run once after migrating existing data:

    python -m src.billing.backfill
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.billing.history import BackfillResult, HistorySnapshotWriter
from src.core.database import open_database
from src.core.logging import configure_logging, get_logger

logger = get_logger(__name__)


async def run_backfill(
    session_factory: async_sessionmaker[AsyncSession],
) -> BackfillResult:
    """Backfill snapshots in a single transaction.

    Args:
        session_factory: Session factory bound to the target database.

    Returns:
        Counts of created and skipped works.
    """
    async with session_factory() as session:
        try:
            result = await HistorySnapshotWriter(session).backfill()
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    return result


async def main() -> None:
    """Entry point for ``python -m src.billing.backfill``."""
    configure_logging()
    async with open_database() as session_factory:
        result = await run_backfill(session_factory)
    logger.info("backfill_complete", created=result.created, skipped=result.skipped)


if __name__ == "__main__":
    asyncio.run(main())
