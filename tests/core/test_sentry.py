"""Tests for Sentry initialization."""

from unittest.mock import patch

from src.core import sentry
from src.core.config import settings


def test_init_sentry_skipped_without_dsn(monkeypatch) -> None:
    monkeypatch.setattr(settings, "sentry_dsn", None)
    with patch.object(sentry.sentry_sdk, "init") as init:
        assert sentry.init_sentry() is False
    init.assert_not_called()


def test_init_sentry_never_sends_pii(monkeypatch) -> None:
    monkeypatch.setattr(settings, "sentry_dsn", "https://key@example.ingest.sentry.io/1")
    with patch.object(sentry.sentry_sdk, "init") as init:
        assert sentry.init_sentry() is True
    kwargs = init.call_args.kwargs
    assert kwargs["send_default_pii"] is False
    assert kwargs["environment"] == settings.environment
    assert kwargs["before_send"] is sentry.scrub_event


def test_scrub_event_filters_identity_numbers() -> None:
    event = {
        "request": {"data": {"name": "Ravi", "pan": "ABCDE1234F", "Aadhaar": "1234"}},
        "extra": {"snapshot": [{"client_pan": "ABCDE1234F", "fees": "500.00"}]},
        "message": "boom",
    }

    scrubbed = sentry.scrub_event(event, {})

    assert scrubbed["request"]["data"] == {
        "name": "Ravi",
        "pan": "[Filtered]",
        "Aadhaar": "[Filtered]",
    }
    assert scrubbed["extra"]["snapshot"][0] == {"client_pan": "[Filtered]", "fees": "500.00"}
    assert scrubbed["message"] == "boom"
