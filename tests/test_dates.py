"""Tests for reference-timezone date normalization."""

from datetime import date, datetime, timedelta, timezone

import pytest

from villapura.errors import InvalidTimestamp
from villapura.utils.dates import DateNormalizer


# =============================================================================
# Instants
# =============================================================================


def test_utc_evening_rolls_to_next_day(normalizer):
    """17:30 UTC is already the next morning at +08:00."""
    assert normalizer.normalize("2025-03-01T17:30:00Z") == date(2025, 3, 2)


def test_utc_afternoon_stays_on_same_day(normalizer):
    assert normalizer.normalize("2025-03-01T15:59:59Z") == date(2025, 3, 1)


def test_explicit_offsets_are_respected(normalizer):
    assert normalizer.normalize("2025-03-01T23:00:00+08:00") == date(2025, 3, 1)
    # 04:00 UTC on the 2nd
    assert normalizer.normalize("2025-03-01T23:00:00-05:00") == date(2025, 3, 2)


def test_naive_datetime_is_treated_as_utc(normalizer):
    assert normalizer.normalize(datetime(2025, 3, 1, 20, 0)) == date(2025, 3, 2)


def test_aware_datetime(normalizer):
    instant = datetime(2025, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=-10)))
    assert normalizer.normalize(instant) == date(2025, 3, 2)


def test_epoch_milliseconds(normalizer):
    # 2025-03-01T17:30:00Z
    assert normalizer.normalize(1740850200000) == date(2025, 3, 2)
    assert normalizer.normalize(1740850200000.0) == date(2025, 3, 2)


# =============================================================================
# Calendar dates
# =============================================================================


def test_plain_date_is_unchanged(normalizer):
    assert normalizer.normalize(date(2025, 12, 31)) == date(2025, 12, 31)


def test_date_only_string_is_a_calendar_date(normalizer):
    """A bare YYYY-MM-DD is not shifted through any timezone."""
    assert normalizer.normalize("2025-06-10") == date(2025, 6, 10)
    assert normalizer.normalize("  2025-06-10 ") == date(2025, 6, 10)


def test_other_offsets():
    utc = DateNormalizer(offset_hours=0)
    assert utc.normalize("2025-03-01T17:30:00Z") == date(2025, 3, 1)

    hawaii = DateNormalizer(offset_hours=-10)
    assert hawaii.normalize("2025-03-01T05:00:00Z") == date(2025, 2, 28)


def test_to_reference_converts_timezone(normalizer):
    local = normalizer.to_reference(datetime(2025, 3, 1, 17, 30, tzinfo=timezone.utc))
    assert local.utcoffset() == timedelta(hours=8)
    assert (local.day, local.hour, local.minute) == (2, 1, 30)


# =============================================================================
# Invalid input
# =============================================================================


@pytest.mark.parametrize(
    "value",
    ["not a date", "", "   ", "2025-13-01", "2025-02-30", None, True, [], {"date": "2025-01-01"}, float("nan")],
)
def test_invalid_values_raise(normalizer, value):
    with pytest.raises(InvalidTimestamp):
        normalizer.normalize(value)


def test_invalid_timestamp_keeps_value(normalizer):
    with pytest.raises(InvalidTimestamp) as exc_info:
        normalizer.normalize("yesterday")

    assert exc_info.value.value == "yesterday"
    assert exc_info.value.status_code == 400
