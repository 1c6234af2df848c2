"""Booking data models and storage schema."""

from .booking import (
    Booking,
    BookingSubmission,
    PaymentStatus,
    ValidatedBooking,
)

__all__ = [
    "Booking",
    "BookingSubmission",
    "PaymentStatus",
    "ValidatedBooking",
]
