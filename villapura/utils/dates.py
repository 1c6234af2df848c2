"""Calendar-day normalization in the property's reference timezone.

Every date compared against a blocked range (feed events and booking
check-in/check-out alike) goes through the same normalizer so both sides
agree on which calendar day an instant belongs to.
"""

import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

from villapura.errors import InvalidTimestamp

DEFAULT_UTC_OFFSET_HOURS = 8  # WITA (Asia/Makassar)

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DateNormalizer:
    """
    Maps instants to calendar dates in a fixed-offset reference timezone.

    Usage:
        normalizer = DateNormalizer(offset_hours=8)
        normalizer.normalize("2025-03-01T17:30:00Z")  # date(2025, 3, 2)
    """

    def __init__(self, offset_hours: int = DEFAULT_UTC_OFFSET_HOURS):
        self.offset_hours = offset_hours
        self.tz = timezone(timedelta(hours=offset_hours))

    def normalize(self, instant: Any) -> date:
        """
        Convert an instant to its calendar date in the reference timezone.

        Args:
            instant: date, datetime (naive means UTC), ISO-8601 string,
                or epoch milliseconds

        Returns:
            The calendar date; a plain date is returned unchanged

        Raises:
            InvalidTimestamp: If the value cannot be interpreted
        """
        # datetime is a subclass of date, check it first
        if isinstance(instant, datetime):
            return self._from_datetime(instant)
        if isinstance(instant, date):
            return instant
        if isinstance(instant, str):
            return self._from_string(instant)
        if isinstance(instant, (int, float)) and not isinstance(instant, bool):
            try:
                moment = datetime.fromtimestamp(instant / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError) as e:
                raise InvalidTimestamp(instant) from e
            return self._from_datetime(moment)
        raise InvalidTimestamp(instant)

    def to_reference(self, instant: datetime) -> datetime:
        """Express an instant in the reference timezone."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(self.tz)

    def _from_datetime(self, instant: datetime) -> date:
        return self.to_reference(instant).date()

    def _from_string(self, value: str) -> date:
        text = value.strip()
        if not text:
            raise InvalidTimestamp(value)
        try:
            if _DATE_ONLY.match(text):
                return date.fromisoformat(text)
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            return self._from_datetime(datetime.fromisoformat(text))
        except ValueError as e:
            raise InvalidTimestamp(value) from e

