"""Sentry error tracking integration."""

from typing import Any

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from src.core.config import settings

# Client identity numbers that must never leave the process.
SCRUBBED_KEYS = frozenset({"pan", "aadhaar", "client_pan", "password", "password_hash"})
SCRUBBED_VALUE = "[Filtered]"


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: SCRUBBED_VALUE if str(key).lower() in SCRUBBED_KEYS else _scrub(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_scrub(item) for item in value]
    return value


def scrub_event(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any]:
    """Remove PAN, Aadhaar and password fields from an outgoing event.

    Request bodies, extra data and breadcrumbs are all walked, since a
    failing client update carries the submitted identity numbers in each.
    """
    for section in ("request", "extra", "contexts", "breadcrumbs"):
        if section in event:
            event[section] = _scrub(event[section])
    return event


def init_sentry() -> bool:
    """Initialize Sentry error tracking if DSN is configured.

    Only 5xx responses are captured.

    Returns:
        True if Sentry was initialized, False when no DSN is configured.
    """
    if not settings.sentry_dsn:
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.environment,
        traces_sample_rate=0.1,
        send_default_pii=False,
        before_send=scrub_event,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(
                transaction_style="endpoint",
                failed_request_status_codes={*range(500, 600)},
            ),
        ],
    )
    return True
