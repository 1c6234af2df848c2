"""Tests for booking request validation."""

from datetime import date
from decimal import Decimal

import pytest

from helpers import booking_payload
from villapura.errors import (
    InvalidDateRange,
    InvalidEmail,
    InvalidGuestCount,
    InvalidTotal,
    MissingDates,
    MissingName,
)
from villapura.models.booking import BookingSubmission
from villapura.services.validation import BookingValidator, coerce_decimal, coerce_int


@pytest.fixture
def validator(normalizer):
    return BookingValidator(normalizer)


def submission(**overrides) -> BookingSubmission:
    return BookingSubmission.model_validate(booking_payload(**overrides))


# =============================================================================
# Happy path
# =============================================================================


def test_valid_submission(validator):
    validated = validator.validate(submission())

    assert validated.guest_name == "Ayu Lestari"
    assert validated.email == "ayu@example.com"
    assert validated.check_in_date == date(2025, 6, 10)
    assert validated.check_out_date == date(2025, 6, 14)
    assert (validated.adults, validated.kids) == (2, 1)
    assert validated.total == Decimal("150.00")
    assert validated.arrival_time == "15:00"
    assert validated.special_requests == "Airport pickup"
    assert validated.discount_code is None


def test_names_and_email_are_trimmed(validator):
    validated = validator.validate(
        submission(firstName="  Ayu ", lastName=" Lestari", email=" ayu@example.com ")
    )

    assert validated.guest_name == "Ayu Lestari"
    assert validated.email == "ayu@example.com"


def test_snake_case_fields_are_accepted(validator):
    validated = validator.validate(
        BookingSubmission(
            first_name="Made",
            last_name="Wirawan",
            email="made@example.com",
            start_date="2025-07-01",
            end_date="2025-07-03",
        )
    )

    assert validated.guest_name == "Made Wirawan"


def test_instant_dates_use_reference_timezone(validator):
    """An evening UTC instant is the next day in Bali."""
    validated = validator.validate(
        submission(startDate="2025-06-09T18:00:00Z", endDate="2025-06-13T18:00:00.000Z")
    )

    assert validated.check_in_date == date(2025, 6, 10)
    assert validated.check_out_date == date(2025, 6, 14)


def test_epoch_millisecond_dates(validator):
    # 2025-03-01T17:30:00Z and three days later
    start = 1740850200000
    validated = validator.validate(submission(startDate=start, endDate=start + 3 * 86_400_000))

    assert validated.check_in_date == date(2025, 3, 2)
    assert validated.check_out_date == date(2025, 3, 5)


# =============================================================================
# Ordered failures
# =============================================================================


@pytest.mark.parametrize(
    "overrides",
    [
        {"firstName": ""},
        {"lastName": "   "},
        {"firstName": None},
        {"lastName": 42},
    ],
)
def test_missing_name(validator, overrides):
    with pytest.raises(MissingName) as exc_info:
        validator.validate(submission(**overrides))

    assert exc_info.value.message == "First and last name are required"
    assert exc_info.value.status_code == 400


@pytest.mark.parametrize("email", ["", "ayu", "ayu@example", "ayu @example.com", None, 7])
def test_invalid_email(validator, email):
    with pytest.raises(InvalidEmail) as exc_info:
        validator.validate(submission(email=email))

    assert exc_info.value.message == "Invalid email address provided"


@pytest.mark.parametrize(
    "overrides",
    [
        {"startDate": None},
        {"endDate": ""},
        {"startDate": "next tuesday"},
        {"endDate": "2025-02-30"},
    ],
)
def test_missing_or_unreadable_dates(validator, overrides):
    with pytest.raises(MissingDates) as exc_info:
        validator.validate(submission(**overrides))

    assert exc_info.value.message == "Check-in and check-out dates are required"


@pytest.mark.parametrize(
    "start, end",
    [("2025-06-14", "2025-06-10"), ("2025-06-10", "2025-06-10")],
)
def test_invalid_date_range(validator, start, end):
    with pytest.raises(InvalidDateRange) as exc_info:
        validator.validate(submission(startDate=start, endDate=end))

    assert exc_info.value.message == "Invalid date range"


def test_same_reference_day_is_an_empty_stay(validator):
    """Two instants hours apart that fall on the same +08:00 day."""
    with pytest.raises(InvalidDateRange):
        validator.validate(
            submission(startDate="2025-06-09T17:00:00Z", endDate="2025-06-10T10:00:00Z")
        )


def test_first_failure_wins(validator):
    """A bad name is reported even when everything else is wrong too."""
    with pytest.raises(MissingName):
        validator.validate(
            submission(firstName="", email="bad", startDate=None, adults=99, total=-5)
        )

    with pytest.raises(InvalidEmail):
        validator.validate(submission(email="bad", startDate=None))


# =============================================================================
# Guest counts & total
# =============================================================================


def test_guest_counts_default(validator):
    validated = validator.validate(submission(adults=None, kids=None))

    assert (validated.adults, validated.kids) == (1, 0)


def test_guest_counts_are_coerced(validator):
    validated = validator.validate(submission(adults="3 adults", kids="2"))

    assert (validated.adults, validated.kids) == (3, 2)


def test_unparseable_adults_fall_back_to_one(validator):
    validated = validator.validate(submission(adults="many", kids="none"))

    assert (validated.adults, validated.kids) == (1, 0)


@pytest.mark.parametrize("adults, kids", [(9, 0), (-1, 0), (2, 5), (2, -1)])
def test_guest_counts_out_of_range(validator, adults, kids):
    with pytest.raises(InvalidGuestCount) as exc_info:
        validator.validate(submission(adults=adults, kids=kids))

    assert exc_info.value.status_code == 400
    assert exc_info.value.context == {"adults": adults, "kids": kids}


@pytest.mark.parametrize(
    "total, expected",
    [
        ("150.00", Decimal("150.00")),
        (99.999, Decimal("100.00")),
        ("12.345", Decimal("12.35")),
        ("80 AUD", Decimal("80.00")),
        (None, Decimal("0.00")),
        ("free", Decimal("0.00")),
        (0, Decimal("0.00")),
    ],
)
def test_total_coercion(validator, total, expected):
    assert validator.validate(submission(total=total)).total == expected


def test_negative_total_rejected(validator):
    with pytest.raises(InvalidTotal):
        validator.validate(submission(total="-10"))


def test_optional_text_blank_becomes_none(validator):
    validated = validator.validate(
        submission(arrivalTime="  ", specialRequests="", discountCode=" testfree ")
    )

    assert validated.arrival_time is None
    assert validated.special_requests is None
    assert validated.discount_code == "testfree"


# =============================================================================
# Coercion helpers
# =============================================================================


def test_coerce_int():
    assert coerce_int("42abc") == 42
    assert coerce_int(" -3") == -3
    assert coerce_int(2.9) == 2
    assert coerce_int("abc") is None
    assert coerce_int(True) is None
    assert coerce_int(float("nan")) is None


def test_coerce_decimal():
    assert coerce_decimal("1.50") == Decimal("1.50")
    assert coerce_decimal(".5") == Decimal("0.5")
    assert coerce_decimal(3) == Decimal(3)
    assert coerce_decimal("") is None
    assert coerce_decimal(False) is None
