"""Structured logging configuration using structlog."""

import logging
import sys
from contextvars import ContextVar, Token
from dataclasses import dataclass
from typing import Any

import orjson
import structlog
from structlog.types import Processor

from src.core.config import settings

# Context variables for request/work correlation
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
client_id_ctx: ContextVar[int | None] = ContextVar("client_id", default=None)
work_id_ctx: ContextVar[int | None] = ContextVar("work_id", default=None)

# Loggers that are too chatty at INFO for request-level logs
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


@dataclass
class ContextTokens:
    """Tokens returned by bind_request_context, used to restore prior values."""

    request_id: Token
    client_id: Token
    work_id: Token


def bind_request_context(
    request_id: str | None,
    client_id: int | None = None,
    work_id: int | None = None,
) -> ContextTokens:
    """Set the correlation ids merged into every event of the current request."""
    return ContextTokens(
        request_id=request_id_ctx.set(request_id),
        client_id=client_id_ctx.set(client_id),
        work_id=work_id_ctx.set(work_id),
    )


def reset_request_context(tokens: ContextTokens) -> None:
    """Restore the correlation ids that were active before bind_request_context."""
    work_id_ctx.reset(tokens.work_id)
    client_id_ctx.reset(tokens.client_id)
    request_id_ctx.reset(tokens.request_id)


def _add_context_vars(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add context variables to log events.

    Args:
        logger: The logger instance (unused).
        method_name: The logging method name (unused).
        event_dict: The log event dictionary.

    Returns:
        Updated event dictionary with context variables.
    """
    if request_id := request_id_ctx.get():
        event_dict["request_id"] = request_id
    if (client_id := client_id_ctx.get()) is not None:
        event_dict.setdefault("client_id", client_id)
    if (work_id := work_id_ctx.get()) is not None:
        event_dict.setdefault("work_id", work_id)
    return event_dict


def _orjson_serializer(obj: Any, **kwargs: Any) -> str:
    """Serialize log event to JSON using orjson.

    Decimal and other non-native values fall back to ``str``.
    """
    return orjson.dumps(obj, default=str).decode("utf-8")


def configure_logging() -> None:
    """Configure structlog for the application.

    Development mode: ConsoleRenderer with colors for readability.
    Production mode: JSONRenderer with orjson for structured logging.
    """
    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        _add_context_vars,
    ]

    log_format = settings.log_format.lower() if settings.log_format else None
    use_json = log_format == "json" or (
        log_format is None and settings.environment != "development"
    )

    if use_json:
        processors: list[Processor] = [
            *shared_processors,
            structlog.processors.EventRenamer("message"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(serializer=_orjson_serializer),
        ]
    else:
        processors = [
            *shared_processors,
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if settings.debug else logging.INFO,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.INFO if settings.debug else logging.WARNING
        )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a configured structlog logger.

    Args:
        name: Optional logger name. Defaults to __name__ of caller.

    Returns:
        Configured structlog bound logger.
    """
    return structlog.get_logger(name)
