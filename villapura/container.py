"""Wiring of services from settings."""

import asyncio
from dataclasses import dataclass, field

import asyncpg
import httpx

from villapura.config import Settings
from villapura.services.availability import AvailabilityCache
from villapura.services.booking_service import BookingService, PostCommitHook
from villapura.services.calendar_feed import CalendarFeedSynchronizer, FeedSyncJob
from villapura.services.ledger import (
    BookingLedger,
    BookingRepository,
    InMemoryBookingRepository,
    PostgresBookingRepository,
)
from villapura.services.notifications import BookingNotifier
from villapura.services.payments import PaymentGateway, PaymentReconciler, StripePaymentGateway
from villapura.services.validation import BookingValidator
from villapura.utils.dates import DateNormalizer
from villapura.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ServiceContainer:
    """Everything the HTTP layer needs, owned by one application instance."""

    cache: AvailabilityCache
    synchronizer: CalendarFeedSynchronizer
    sync_job: FeedSyncJob
    ledger: BookingLedger
    reconciler: PaymentReconciler
    booking_service: BookingService
    storage: str = "memory"
    pool: asyncpg.Pool | None = field(default=None, repr=False)

    async def start(self) -> None:
        await self.sync_job.start()

    async def close(self) -> None:
        await self.booking_service.drain()
        await self.sync_job.stop()
        if self.pool is not None:
            await self.pool.close()
            logger.info("database_disconnected")


def build_container(
    settings: Settings,
    repository: BookingRepository,
    gateway: PaymentGateway,
    post_commit_hooks: list[PostCommitHook] | None = None,
    storage: str = "memory",
    pool: asyncpg.Pool | None = None,
    feed_client: httpx.AsyncClient | None = None,
) -> ServiceContainer:
    """Assemble the service graph around a repository and payment gateway."""
    normalizer = DateNormalizer(settings.app.app_reference_utc_offset_hours)
    cache = AvailabilityCache()
    synchronizer = CalendarFeedSynchronizer(
        cache=cache,
        normalizer=normalizer,
        feed_url=settings.calendar.url,
        timeout=settings.calendar.timeout_seconds,
        http_client=feed_client,
    )
    ledger = BookingLedger(repository, settings.app.app_free_discount_codes)
    reconciler = PaymentReconciler(
        gateway=gateway,
        ledger=ledger,
        currency=settings.stripe.currency,
        description=settings.stripe.description,
    )
    booking_service = BookingService(
        validator=BookingValidator(normalizer),
        ledger=ledger,
        reconciler=reconciler,
        post_commit_hooks=post_commit_hooks or [],
    )
    return ServiceContainer(
        cache=cache,
        synchronizer=synchronizer,
        sync_job=FeedSyncJob(synchronizer, settings.calendar.sync_interval_seconds),
        ledger=ledger,
        reconciler=reconciler,
        booking_service=booking_service,
        storage=storage,
        pool=pool,
    )


async def create_pool_with_retry(settings: Settings) -> asyncpg.Pool:
    """Connect to PostgreSQL, retrying with a fixed delay."""
    db = settings.database
    attempt = 0
    while True:
        attempt += 1
        try:
            pool = await asyncpg.create_pool(
                settings.database_url,
                min_size=db.min_pool_size,
                max_size=db.max_pool_size,
                timeout=5,
            )
            logger.info("database_connected", attempt=attempt)
            return pool
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as e:
            logger.error("database_connection_error", attempt=attempt, error=str(e))
            if attempt >= db.connect_retries:
                raise
            await asyncio.sleep(db.retry_delay_seconds)


async def create_container(settings: Settings) -> ServiceContainer:
    """Build the production container: PostgreSQL (or memory), Stripe, Resend."""
    pool = None
    if settings.database_url:
        pool = await create_pool_with_retry(settings)
        postgres = PostgresBookingRepository(pool)
        await postgres.create_schema()
        repository: BookingRepository = postgres
        storage = "postgres"
    else:
        logger.warning("database_not_configured", storage="memory")
        repository = InMemoryBookingRepository()
        storage = "memory"

    gateway = StripePaymentGateway(
        api_key=settings.stripe_secret_key,
        webhook_secret=settings.stripe_webhook_secret,
        timeout=settings.stripe.timeout_seconds,
    )
    notifier = BookingNotifier(
        api_key=settings.resend_api_key,
        sender=settings.email.email_from,
        owner_email=settings.email.owner_email,
        timeout=settings.email.email_timeout_seconds,
    )
    return build_container(
        settings,
        repository=repository,
        gateway=gateway,
        post_commit_hooks=[notifier],
        storage=storage,
        pool=pool,
    )
