"""structlog setup for the booking backend.

Log calls use event-style keys with identifiers as key/value pairs:

    logger.info("booking_created", booking_id=booking.id, payment_status="pending")
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

# Event keys whose values must never reach the log output in clear text
SECRET_KEYS = frozenset({"client_secret", "api_key", "secret_key", "webhook_secret", "password"})

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "stripe", "asyncio")


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask values logged under a secret-bearing key."""
    for key in SECRET_KEYS.intersection(event_dict):
        value = event_dict[key]
        event_dict[key] = mask_sensitive(value if isinstance(value, str) else str(value))
    return event_dict


def _renderer(format_type: str) -> Processor:
    if format_type == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.rich_traceback,
    )


def setup_logging(
    level: str = "INFO",
    format_type: Literal["json", "console"] = "console",
) -> None:
    """
    Configure structlog and route stdlib logging (uvicorn, asyncpg) to stdout.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        format_type: 'json' for deployed servers, 'console' for local runs
    """
    numeric_level = getattr(logging, level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            redact_secrets,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(format_type),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(name)s: %(message)s", level=numeric_level, stream=sys.stdout)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger, usually named after the calling module."""
    return structlog.get_logger(name)


def bind_request_context(**values: Any) -> None:
    """Attach values (request id, method, path) to every log line of the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def mask_sensitive(value: str | None, visible_chars: int = 4) -> str:
    """
    Mask a secret or identifier, keeping its last characters.

    ``mask_sensitive("whsec_abcdef1234")`` gives ``"************1234"``;
    missing values give ``""``.
    """
    if not value:
        return ""
    hidden = max(len(value) - visible_chars, 0)
    if hidden == 0:
        return "*" * len(value)
    return "*" * hidden + value[-visible_chars:]
