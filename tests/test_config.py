"""Tests for settings and logging helpers."""

import pytest
import structlog
from pydantic import ValidationError

from villapura.config import AppSettings, CalendarFeedSettings, DatabaseSettings, Settings, StripeSettings
from villapura.utils.logger import (
    bind_request_context,
    clear_request_context,
    mask_sensitive,
    redact_secrets,
)


def test_defaults(monkeypatch):
    for name in ("APP_PORT", "APP_REFERENCE_UTC_OFFSET_HOURS", "APP_FREE_DISCOUNT_CODES", "STRIPE_CURRENCY"):
        monkeypatch.delenv(name, raising=False)

    assert AppSettings(_env_file=None).app_port == 5000
    assert AppSettings(_env_file=None).app_free_discount_codes == ["TESTFREE"]
    assert AppSettings(_env_file=None).app_reference_utc_offset_hours == 8
    assert StripeSettings(_env_file=None).currency == "aud"


def test_env_prefixes(monkeypatch):
    monkeypatch.setenv("ICAL_URL", "https://calendar.test/feed.ics")
    monkeypatch.setenv("ICAL_SYNC_INTERVAL_SECONDS", "600")
    monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_abc")
    monkeypatch.setenv("DATABASE_URL", "postgresql://localhost/villapura")

    settings = Settings(_env_file=None)

    assert settings.calendar.url == "https://calendar.test/feed.ics"
    assert settings.calendar.sync_interval_seconds == 600
    assert settings.stripe_secret_key == "sk_test_abc"
    assert settings.database_url == "postgresql://localhost/villapura"


def test_database_url_optional(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    assert DatabaseSettings(_env_file=None).url is None


@pytest.mark.parametrize("offset", [-13, 15])
def test_reference_offset_bounds(offset):
    with pytest.raises(ValidationError):
        AppSettings(_env_file=None, app_reference_utc_offset_hours=offset)


def test_sync_interval_minimum():
    with pytest.raises(ValidationError):
        CalendarFeedSettings(_env_file=None, sync_interval_seconds=30)


# =============================================================================
# Logging helpers
# =============================================================================


def test_mask_sensitive():
    assert mask_sensitive("whsec_abcdef1234") == "************1234"
    assert mask_sensitive("abc") == "***"
    assert mask_sensitive(None) == ""


def test_request_context_binding():
    bind_request_context(request_id="abc123", path="/bookings")
    assert structlog.contextvars.get_contextvars() == {"request_id": "abc123", "path": "/bookings"}

    bind_request_context(request_id="def456")
    assert structlog.contextvars.get_contextvars() == {"request_id": "def456"}

    clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_redact_secrets_masks_known_keys():
    event = redact_secrets(None, "info", {
        "event": "payment_authorized",
        "client_secret": "pi_1_secret_abcd",
        "booking_id": "b1",
    })

    assert event["client_secret"] == "************abcd"
    assert event["booking_id"] == "b1"
