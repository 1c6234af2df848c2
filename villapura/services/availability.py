"""In-process cache of externally blocked date ranges."""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable


@dataclass(frozen=True, order=True)
class BlockedRange:
    """One unavailability window from the external calendar.

    ``end`` follows iCalendar DTEND semantics: the guest-facing block covers
    ``start`` up to, not including, ``end``. A range with ``start == end``
    blocks its single start day.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"Blocked range starts after it ends: {self.start} > {self.end}")

    def covers(self, day: date) -> bool:
        if self.start == self.end:
            return day == self.start
        return self.start <= day < self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class _Snapshot:
    ranges: tuple[BlockedRange, ...]
    synced_at: datetime | None


class AvailabilityCache:
    """
    Holds the most recent successful calendar sync.

    The whole set is swapped in one reference assignment, so a reader sees
    either the previous or the new snapshot and never waits on a refresh.

    Usage:
        cache = AvailabilityCache()
        cache.replace([BlockedRange(date(2025, 1, 3), date(2025, 1, 7))])
        cache.read()
    """

    def __init__(self, ranges: Iterable[BlockedRange] | None = None):
        self._snapshot = _Snapshot(ranges=(), synced_at=None)
        if ranges is not None:
            self.replace(ranges)

    def replace(self, ranges: Iterable[BlockedRange]) -> None:
        """Atomically replace the cached ranges."""
        ordered = tuple(sorted(ranges))
        self._snapshot = _Snapshot(ranges=ordered, synced_at=datetime.now(timezone.utc))

    def read(self) -> tuple[BlockedRange, ...]:
        """Return the last successfully cached ranges."""
        return self._snapshot.ranges

    @property
    def has_synced(self) -> bool:
        return self._snapshot.synced_at is not None

    @property
    def last_synced_at(self) -> datetime | None:
        return self._snapshot.synced_at

    def is_blocked(self, day: date) -> bool:
        """Check whether a calendar day falls inside any blocked range."""
        return any(blocked.covers(day) for blocked in self.read())
