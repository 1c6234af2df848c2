"""Exception hierarchy for the booking backend.

Every error carries the HTTP status the API layer answers with and the
public message placed in the ``error`` field of the response body.
"""

from typing import Any


class BookingSystemError(Exception):
    """Base exception for all booking backend errors."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None, **context: Any):
        super().__init__(message)
        self.message = message
        self.details = details
        self.context = context

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


# =============================================================================
# Input errors
# =============================================================================


class InvalidTimestamp(BookingSystemError):
    """A value could not be interpreted as an instant or calendar date."""

    status_code = 400

    def __init__(self, value: Any):
        super().__init__(f"Invalid timestamp: {value!r}")
        self.value = value


class ValidationError(BookingSystemError):
    """Client input is malformed. Never retried."""

    status_code = 400


class MissingName(ValidationError):
    def __init__(self) -> None:
        super().__init__("First and last name are required")


class InvalidEmail(ValidationError):
    def __init__(self) -> None:
        super().__init__("Invalid email address provided")


class MissingDates(ValidationError):
    def __init__(self) -> None:
        super().__init__("Check-in and check-out dates are required")


class InvalidDateRange(ValidationError):
    def __init__(self) -> None:
        super().__init__("Invalid date range")


class InvalidGuestCount(ValidationError):
    def __init__(self, adults: int, kids: int):
        super().__init__(
            "Guest count out of range (1-8 adults, 0-4 kids)",
            adults=adults,
            kids=kids,
        )


class InvalidTotal(ValidationError):
    def __init__(self) -> None:
        super().__init__("Total must not be negative")


# =============================================================================
# Ledger errors
# =============================================================================


class NotFoundError(BookingSystemError):
    status_code = 404


class BookingNotFound(NotFoundError):
    def __init__(self, booking_id: str | None = None, payment_intent_id: str | None = None):
        super().__init__(
            "Booking not found",
            booking_id=booking_id,
            payment_intent_id=payment_intent_id,
        )
        self.booking_id = booking_id
        self.payment_intent_id = payment_intent_id


class PersistenceError(BookingSystemError):
    """Booking storage is unavailable or rejected the write."""

    status_code = 500


class BookingPersistenceFailed(PersistenceError):
    """Payment was authorized but the booking could not be stored."""

    def __init__(self, details: str, payment_intent_id: str | None):
        super().__init__(
            "Failed to create booking",
            details=details,
            payment_intent_id=payment_intent_id,
        )
        self.payment_intent_id = payment_intent_id

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        # Ops reconcile the orphaned authorization by this id
        body["paymentIntentId"] = self.payment_intent_id
        return body


# =============================================================================
# Payment errors
# =============================================================================


class PaymentError(BookingSystemError):
    status_code = 400


class PaymentProviderError(PaymentError):
    """The payment provider call failed or timed out."""

    status_code = 500


class PaymentAuthorizationFailed(PaymentError):
    status_code = 500

    def __init__(self, details: str):
        super().__init__("Failed to create booking", details=details)


class PaymentNotSucceeded(PaymentError):
    def __init__(self, current_status: str):
        super().__init__(f"Payment not succeeded: {current_status}")
        self.current_status = current_status


class PaymentIntentMismatch(PaymentError):
    def __init__(self, booking_id: str, payment_intent_id: str):
        super().__init__(
            "PaymentIntent does not belong to this booking",
            booking_id=booking_id,
            payment_intent_id=payment_intent_id,
        )


class MissingPaymentReference(PaymentError):
    def __init__(self) -> None:
        super().__init__("PaymentIntent ID and Booking ID are required")


# =============================================================================
# Webhook and feed errors
# =============================================================================


class WebhookError(BookingSystemError):
    status_code = 400


class InvalidSignature(WebhookError):
    def __init__(self, reason: str):
        super().__init__(f"Webhook Error: {reason}")
        self.reason = reason


class FeedError(BookingSystemError):
    """The calendar feed is unreachable or unparseable. Never leaves the synchronizer."""

    status_code = 502
