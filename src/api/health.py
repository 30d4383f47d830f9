"""Health check endpoint for deployment probes."""

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db
from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    db: str
    environment: str


async def database_reachable(db: AsyncSession) -> bool:
    """Run a trivial query; any failure counts as unreachable."""
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.exception("database_health_check_failed", error=str(e))
        return False
    return True


@router.get("/health", response_model=HealthResponse)
async def health_check(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthResponse:
    """Report whether the database answers.

    Responds 200 in both states; ``status`` tells them apart.
    """
    connected = await database_reachable(db)
    return HealthResponse(
        status="ok" if connected else "degraded",
        db="connected" if connected else "disconnected",
        environment=settings.environment,
    )
