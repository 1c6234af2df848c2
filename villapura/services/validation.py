"""Structural and business validation of incoming booking requests."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from villapura.errors import (
    InvalidDateRange,
    InvalidEmail,
    InvalidGuestCount,
    InvalidTimestamp,
    InvalidTotal,
    MissingDates,
    MissingName,
)
from villapura.models.booking import BookingSubmission, ValidatedBooking
from villapura.utils.dates import DateNormalizer

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_DECIMAL = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+))")

MAX_ADULTS = 8
MAX_KIDS = 4


# =============================================================================
# Lenient numeric coercion
# =============================================================================


def coerce_int(value: Any) -> int | None:
    """Parse the leading integer of a value, None when there is none."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def coerce_decimal(value: Any) -> Decimal | None:
    """Parse the leading decimal number of a value, None when there is none."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        value = repr(value)
    match = _LEADING_DECIMAL.match(str(value))
    if not match:
        return None
    try:
        return Decimal(match.group(1))
    except InvalidOperation:
        return None


def _clean_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# =============================================================================
# Validator
# =============================================================================


class BookingValidator:
    """
    Validates a booking submission, returning the first failure.

    Checks run in order: names, email, dates present, date order. Guest
    counts and total are coerced with defaults (adults 1, kids 0, total 0)
    and only then range checked.
    """

    def __init__(self, normalizer: DateNormalizer):
        self.normalizer = normalizer

    def validate(self, submission: BookingSubmission) -> ValidatedBooking:
        """
        Validate and normalize a booking submission.

        Raises:
            MissingName, InvalidEmail, MissingDates, InvalidDateRange,
            InvalidGuestCount, InvalidTotal
        """
        first_name = _clean_text(submission.first_name) if isinstance(submission.first_name, str) else None
        last_name = _clean_text(submission.last_name) if isinstance(submission.last_name, str) else None
        if not first_name or not last_name:
            raise MissingName()

        email = submission.email.strip() if isinstance(submission.email, str) else ""
        if not EMAIL_PATTERN.match(email):
            raise InvalidEmail()

        if not submission.start_date or not submission.end_date:
            raise MissingDates()
        try:
            check_in = self.normalizer.normalize(submission.start_date)
            check_out = self.normalizer.normalize(submission.end_date)
        except InvalidTimestamp as e:
            raise MissingDates() from e

        if check_in >= check_out:
            raise InvalidDateRange()

        adults = coerce_int(submission.adults) or 1
        kids = coerce_int(submission.kids) or 0
        if not 1 <= adults <= MAX_ADULTS or not 0 <= kids <= MAX_KIDS:
            raise InvalidGuestCount(adults, kids)

        total = coerce_decimal(submission.total) or Decimal("0")
        if total < 0:
            raise InvalidTotal()
        total = total.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

        return ValidatedBooking(
            guest_name=f"{first_name} {last_name}",
            email=email,
            check_in_date=check_in,
            check_out_date=check_out,
            adults=adults,
            kids=kids,
            total=total,
            arrival_time=_clean_text(submission.arrival_time),
            special_requests=_clean_text(submission.special_requests),
            discount_code=_clean_text(submission.discount_code),
        )
