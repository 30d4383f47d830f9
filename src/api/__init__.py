"""API module exports."""

from src.api.clients import router as clients_router
from src.api.deps import get_db
from src.api.health import router as health_router
from src.api.history import router as history_router
from src.api.payments import router as payments_router
from src.api.works import router as works_router

__all__ = [
    "clients_router",
    "get_db",
    "health_router",
    "history_router",
    "payments_router",
    "works_router",
]
