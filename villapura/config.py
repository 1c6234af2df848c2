"""Settings for the booking backend, read from the environment and `.env`."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Find .env file
# =============================================================================

def find_env_file() -> str:
    """Locate the .env file: $VILLAPURA_ENV_FILE, the working directory, then the repository root."""
    explicit = os.environ.get("VILLAPURA_ENV_FILE")
    if explicit:
        return explicit

    for path in (Path.cwd() / ".env", Path(__file__).resolve().parent.parent / ".env"):
        if path.is_file():
            return str(path)

    return ".env"


ENV_FILE = find_env_file()


# =============================================================================
# Settings Classes
# =============================================================================


class _EnvSettings(BaseSettings):
    """Shared .env source; subclasses add their own env_prefix."""

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
    )


class AppSettings(_EnvSettings):
    """Application-level settings."""

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Server
    app_host: str = "0.0.0.0"
    app_port: int = 5000
    app_cors_origins: list[str] = [
        "https://villapurabali.com",
        "http://localhost:5173",
    ]

    # Booking rules
    app_reference_utc_offset_hours: int = 8  # WITA, Asia/Makassar
    app_free_discount_codes: list[str] = ["TESTFREE"]

    @field_validator("app_reference_utc_offset_hours")
    @classmethod
    def validate_offset(cls, v: int) -> int:
        if not -12 <= v <= 14:
            raise ValueError("Reference UTC offset must be between -12 and +14 hours")
        return v


class CalendarFeedSettings(_EnvSettings):
    """External iCal feed settings."""

    model_config = SettingsConfigDict(env_prefix="ICAL_")

    url: str | None = None
    sync_interval_seconds: int = 1800
    timeout_seconds: float = 10.0

    @field_validator("sync_interval_seconds")
    @classmethod
    def validate_interval(cls, v: int) -> int:
        if v < 60:
            raise ValueError("Calendar sync interval must be at least 60 seconds")
        return v


class StripeSettings(_EnvSettings):
    """Stripe payment-intent provider settings."""

    model_config = SettingsConfigDict(env_prefix="STRIPE_")

    secret_key: SecretStr = SecretStr("")
    webhook_secret: SecretStr = SecretStr("")
    currency: str = "aud"
    description: str = "Villa Pura Bali Booking"
    timeout_seconds: float = 10.0


class EmailSettings(_EnvSettings):
    """Transactional email (Resend) settings."""

    resend_api_key: SecretStr = SecretStr("")
    owner_email: str | None = None
    email_from: str = "Villa Pura <no-reply@villapurabali.com>"
    email_timeout_seconds: float = 10.0


class DatabaseSettings(_EnvSettings):
    """PostgreSQL settings. Without a URL bookings are kept in memory."""

    model_config = SettingsConfigDict(env_prefix="DATABASE_")

    url: SecretStr | None = None
    min_pool_size: int = 2
    max_pool_size: int = 10
    connect_retries: int = 5
    retry_delay_seconds: float = 5.0


class Settings(_EnvSettings):
    """Lazily built settings for every concern."""

    # Cache for sub-settings
    _app: AppSettings | None = None
    _calendar: CalendarFeedSettings | None = None
    _stripe: StripeSettings | None = None
    _email: EmailSettings | None = None
    _database: DatabaseSettings | None = None

    @property
    def app(self) -> AppSettings:
        if self._app is None:
            self._app = AppSettings()
        return self._app

    @property
    def calendar(self) -> CalendarFeedSettings:
        if self._calendar is None:
            self._calendar = CalendarFeedSettings()
        return self._calendar

    @property
    def stripe(self) -> StripeSettings:
        if self._stripe is None:
            self._stripe = StripeSettings()
        return self._stripe

    @property
    def email(self) -> EmailSettings:
        if self._email is None:
            self._email = EmailSettings()
        return self._email

    @property
    def database(self) -> DatabaseSettings:
        if self._database is None:
            self._database = DatabaseSettings()
        return self._database

    # Convenience accessors
    @property
    def stripe_secret_key(self) -> str:
        return self.stripe.secret_key.get_secret_value()

    @property
    def stripe_webhook_secret(self) -> str:
        return self.stripe.webhook_secret.get_secret_value()

    @property
    def resend_api_key(self) -> str:
        return self.email.resend_api_key.get_secret_value()

    @property
    def database_url(self) -> str | None:
        url = self.database.url
        return url.get_secret_value() if url else None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
