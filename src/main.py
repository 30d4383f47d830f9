"""FastAPI application entry point with lifespan management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.clients import router as clients_router
from src.api.errors import register_error_handlers
from src.api.health import router as health_router
from src.api.history import router as history_router
from src.api.middleware import RequestContextMiddleware
from src.api.payments import router as payments_router
from src.api.works import router as works_router
from src.core.bootstrap import ensure_admin_user
from src.core.config import settings
from src.core.database import create_engine, create_session_factory
from src.core.logging import configure_logging, get_logger
from src.core.sentry import init_sentry

logger = get_logger(__name__)

ROUTERS = (
    health_router,
    clients_router,
    works_router,
    payments_router,
    history_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database for the life of the process.

    Logging and Sentry are configured before anything else logs, and the
    default administrator is ensured once the session factory exists.
    """
    configure_logging()
    logger.info("worklog_starting", environment=settings.environment)

    if init_sentry():
        logger.info("sentry_initialized")

    engine = create_engine()
    app.state.db_engine = engine
    app.state.async_session = create_session_factory(engine)

    await ensure_admin_user(app.state.async_session)

    try:
        yield
    finally:
        await engine.dispose()
        logger.info("worklog_stopped")


def create_app() -> FastAPI:
    """Build the application with middleware, error handlers and routers."""
    application = FastAPI(
        title="Worklog",
        description="Client work tracking with fees, payment ledgers and completion history",
        version="0.1.0",
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestContextMiddleware)
    register_error_handlers(application)
    for router in ROUTERS:
        application.include_router(router)
    return application


app = create_app()
