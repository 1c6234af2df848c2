"""External iCal feed synchronization into the availability cache."""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

import httpx
from icalendar import Calendar

from villapura.errors import FeedError, InvalidTimestamp
from villapura.services.availability import AvailabilityCache, BlockedRange
from villapura.utils.dates import DateNormalizer
from villapura.utils.logger import get_logger

logger = get_logger(__name__)

# Entries that do not occupy the property
_SKIPPED_STATUSES = {"CANCELLED"}
_SKIPPED_TRANSPARENCY = {"TRANSPARENT"}


@dataclass
class SyncResult:
    """Result of one feed synchronization."""

    success: bool
    count: int = 0
    error: str | None = None


class CalendarFeedSynchronizer:
    """
    Fetches the external calendar feed and refreshes the availability cache.

    A failed sync leaves the cache untouched, so readers keep getting the
    last good data.

    Usage:
        synchronizer = CalendarFeedSynchronizer(cache, normalizer, feed_url)
        result = await synchronizer.sync()
    """

    HEADERS = {
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
    }

    def __init__(
        self,
        cache: AvailabilityCache,
        normalizer: DateNormalizer,
        feed_url: str | None,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.cache = cache
        self.normalizer = normalizer
        self.feed_url = feed_url
        self.timeout = timeout
        self._http_client = http_client
        self._cold_start_lock = asyncio.Lock()
        self.last_error: str | None = None
        self.last_attempt_at: datetime | None = None

    async def sync(self) -> SyncResult:
        """
        Fetch, parse and swap the feed into the cache.

        Returns:
            SyncResult with the number of cached ranges, or the error
        """
        self.last_attempt_at = datetime.now(timezone.utc)
        try:
            text = await self._fetch()
            ranges = self.parse(text)
        except FeedError as e:
            self.last_error = e.message
            logger.error("feed_sync_failed", error=e.message, has_cache=self.cache.has_synced)
            return SyncResult(success=False, error=e.message)

        self.cache.replace(ranges)
        self.last_error = None
        logger.info(
            "feed_sync_completed",
            count=len(ranges),
            ranges=[f"{r.start.isoformat()}..{r.end.isoformat()}" for r in self.cache.read()],
        )
        return SyncResult(success=True, count=len(ranges))

    async def ensure_warm(self) -> bool:
        """
        Run a first sync if the cache has never been populated.

        Concurrent cold-start readers share one in-flight sync.

        Returns:
            True if the cache holds a successful sync
        """
        if self.cache.has_synced:
            return True
        async with self._cold_start_lock:
            if not self.cache.has_synced:
                logger.info("feed_cold_start_sync")
                await self.sync()
        return self.cache.has_synced

    # =========================================================================
    # Fetch & Parse
    # =========================================================================

    async def _fetch(self) -> str:
        if not self.feed_url:
            raise FeedError("Calendar feed not configured")

        try:
            if self._http_client is not None:
                response = await self._http_client.get(
                    self.feed_url, headers=self.HEADERS, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.feed_url, headers=self.HEADERS)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedError(f"Calendar feed returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FeedError(f"Calendar feed unreachable: {e.__class__.__name__}") from e

        return response.text

    def parse(self, text: str) -> list[BlockedRange]:
        """
        Convert iCalendar text into blocked ranges.

        Raises:
            FeedError: If the calendar or any busy event is malformed
        """
        try:
            calendar = Calendar.from_ical(text)
        except Exception as e:  # icalendar raises assorted errors on bad input
            raise FeedError(f"Calendar feed unparseable: {e}") from e

        ranges: list[BlockedRange] = []
        for event in calendar.walk("VEVENT"):
            if not self._is_busy(event):
                continue
            ranges.append(self._event_to_range(event))
        return ranges

    @staticmethod
    def _is_busy(event: Any) -> bool:
        status = str(event.get("status", "")).upper()
        transparency = str(event.get("transp", "")).upper()
        return status not in _SKIPPED_STATUSES and transparency not in _SKIPPED_TRANSPARENCY

    def _event_to_range(self, event: Any) -> BlockedRange:
        uid = str(event.get("uid", ""))
        dtstart = event.get("dtstart")
        if dtstart is None:
            raise FeedError(f"Calendar event without DTSTART (uid={uid!r})")

        dtend = event.get("dtend")
        duration = event.get("duration")
        try:
            start_value: date | datetime = dtstart.dt
            if dtend is not None:
                end_value = dtend.dt
            elif duration is not None:
                end_value = start_value + duration.dt
            else:
                end_value = start_value

            start = self.normalizer.normalize(start_value)
            end = self.normalizer.normalize(end_value)
            return BlockedRange(start=start, end=end)
        except (AttributeError, TypeError, InvalidTimestamp, ValueError) as e:
            raise FeedError(f"Malformed calendar event (uid={uid!r}): {e}") from e


# =============================================================================
# Background Job
# =============================================================================


class FeedSyncJob:
    """Background job that refreshes the calendar feed on a fixed interval."""

    def __init__(self, synchronizer: CalendarFeedSynchronizer, interval_seconds: int = 1800):
        self.synchronizer = synchronizer
        self.interval_seconds = interval_seconds
        self.running = False
        self._task: asyncio.Task | None = None

    async def start(self) -> None:
        """Start the background sync loop."""
        if self.running:
            logger.warning("feed_sync_job_already_running")
            return

        self.running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("feed_sync_job_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the background sync loop."""
        self.running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("feed_sync_job_stopped")

    async def _run_loop(self) -> None:
        while self.running:
            try:
                await self.synchronizer.sync()
            except Exception as e:
                # sync() reports feed errors itself; keep the loop alive on anything else
                logger.error("feed_sync_job_error", error=str(e))

            await asyncio.sleep(self.interval_seconds)

    def get_status(self) -> dict:
        """Get current status of the sync job and cache."""
        cache = self.synchronizer.cache
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "cached_ranges": len(cache.read()),
            "last_synced_at": cache.last_synced_at.isoformat() if cache.last_synced_at else None,
            "last_error": self.synchronizer.last_error,
        }
