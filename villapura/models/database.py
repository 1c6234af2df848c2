"""PostgreSQL schema and row mapping for booking storage."""

from typing import Any, Mapping
from uuid import UUID

from .booking import Booking, PaymentStatus


# =============================================================================
# SQL Schema
# =============================================================================

CREATE_TABLES_SQL = """
-- Booking records table
CREATE TABLE IF NOT EXISTS bookings (
    id UUID PRIMARY KEY,
    guest_name VARCHAR(255) NOT NULL CHECK (length(trim(guest_name)) > 0),
    email VARCHAR(255) NOT NULL,
    check_in_date DATE NOT NULL,
    check_out_date DATE NOT NULL,
    adults SMALLINT NOT NULL CHECK (adults BETWEEN 1 AND 8),
    kids SMALLINT NOT NULL DEFAULT 0 CHECK (kids BETWEEN 0 AND 4),
    total NUMERIC(12, 2) NOT NULL CHECK (total >= 0),
    arrival_time VARCHAR(100),
    special_requests TEXT,

    -- Payment
    payment_status VARCHAR(20) NOT NULL DEFAULT 'pending'
        CHECK (payment_status IN ('pending', 'completed', 'succeeded')),
    payment_intent_id VARCHAR(255),
    discount_code VARCHAR(100),

    -- Metadata
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),

    CONSTRAINT bookings_date_order CHECK (check_in_date < check_out_date)
);

-- Secondary lookup for webhook reconciliation
CREATE UNIQUE INDEX IF NOT EXISTS idx_bookings_payment_intent_id
    ON bookings(payment_intent_id) WHERE payment_intent_id IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_bookings_check_in_date ON bookings(check_in_date);
"""

BOOKING_COLUMNS = (
    "id",
    "guest_name",
    "email",
    "check_in_date",
    "check_out_date",
    "adults",
    "kids",
    "total",
    "arrival_time",
    "special_requests",
    "payment_status",
    "payment_intent_id",
    "discount_code",
    "created_at",
    "updated_at",
)


def booking_to_row(booking: Booking) -> tuple[Any, ...]:
    """Flatten a booking into insert parameters, in BOOKING_COLUMNS order."""
    data = booking.model_dump()
    data["id"] = UUID(booking.id)
    data["payment_status"] = booking.payment_status.value
    return tuple(data[column] for column in BOOKING_COLUMNS)


def row_to_booking(row: Mapping[str, Any]) -> Booking:
    """Build a booking from an asyncpg record."""
    return Booking(
        id=str(row["id"]),
        guest_name=row["guest_name"],
        email=row["email"],
        check_in_date=row["check_in_date"],
        check_out_date=row["check_out_date"],
        adults=row["adults"],
        kids=row["kids"],
        total=row["total"],
        arrival_time=row["arrival_time"],
        special_requests=row["special_requests"],
        payment_status=PaymentStatus(row["payment_status"]),
        payment_intent_id=row["payment_intent_id"],
        discount_code=row["discount_code"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
