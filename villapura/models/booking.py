"""Pydantic models for booking data."""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class PaymentStatus(str, Enum):
    """Booking payment status.

    ``completed`` means no payment was required, ``succeeded`` means the
    provider confirmed the payment. Both are terminal.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    SUCCEEDED = "succeeded"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING

    def can_advance_to(self, target: "PaymentStatus") -> bool:
        """Status only moves forward: pending -> completed | succeeded."""
        return self is PaymentStatus.PENDING and target.is_terminal


class BookingSubmission(BaseModel):
    """Raw booking request as posted by the front end.

    Fields stay loosely typed; coercion and validation happen in the
    booking validator so malformed values produce the documented errors.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    first_name: Any = Field(None, alias="firstName")
    last_name: Any = Field(None, alias="lastName")
    email: Any = None
    start_date: Any = Field(None, alias="startDate")
    end_date: Any = Field(None, alias="endDate")
    adults: Any = None
    kids: Any = None
    total: Any = None
    arrival_time: Any = Field(None, alias="arrivalTime")
    special_requests: Any = Field(None, alias="specialRequests")
    discount_code: Any = Field(None, alias="discountCode")


class ValidatedBooking(BaseModel):
    """A booking request that passed validation, ready for the ledger."""

    model_config = ConfigDict(frozen=True)

    guest_name: str
    email: str
    check_in_date: date
    check_out_date: date
    adults: int = Field(ge=1, le=8)
    kids: int = Field(ge=0, le=4, default=0)
    total: Decimal = Field(ge=0)
    arrival_time: str | None = None
    special_requests: str | None = None
    discount_code: str | None = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(BaseModel):
    """Persisted booking record."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    guest_name: str = Field(min_length=1)
    email: str
    check_in_date: date
    check_out_date: date
    adults: int = Field(ge=1, le=8)
    kids: int = Field(ge=0, le=4, default=0)
    total: Decimal = Field(ge=0)
    arrival_time: str | None = None
    special_requests: str | None = None
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_intent_id: str | None = None
    discount_code: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_validated(
        cls,
        validated: ValidatedBooking,
        payment_status: PaymentStatus,
        payment_intent_id: str | None = None,
    ) -> "Booking":
        return cls(
            **validated.model_dump(),
            payment_status=payment_status,
            payment_intent_id=payment_intent_id,
        )
