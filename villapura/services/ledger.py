"""Booking ledger: the single writer of booking state."""

import asyncio
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Protocol
from uuid import UUID

import asyncpg

from villapura.errors import BookingNotFound, PersistenceError
from villapura.models.booking import Booking, PaymentStatus, ValidatedBooking
from villapura.models.database import (
    BOOKING_COLUMNS,
    CREATE_TABLES_SQL,
    booking_to_row,
    row_to_booking,
)
from villapura.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class StatusChange:
    """Outcome of a payment status update."""

    booking: Booking
    changed: bool


# =============================================================================
# Repositories
# =============================================================================


class BookingRepository(Protocol):
    """Durable booking storage.

    ``advance_status`` must be an atomic compare-and-set: it only moves a
    booking whose status is still ``pending``.
    """

    async def insert(self, booking: Booking) -> Booking: ...

    async def get(self, booking_id: str) -> Booking | None: ...

    async def get_by_payment_intent(self, payment_intent_id: str) -> Booking | None: ...

    async def advance_status(self, booking_id: str, status: PaymentStatus) -> Booking | None: ...


class InMemoryBookingRepository:
    """Process-local storage with per-booking locks."""

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._by_intent: dict[str, str] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.transitions: list[tuple[str, PaymentStatus]] = []

    async def insert(self, booking: Booking) -> Booking:
        if booking.payment_intent_id and booking.payment_intent_id in self._by_intent:
            raise PersistenceError(
                "Failed to create booking",
                details="payment intent already linked to another booking",
            )
        stored = booking.model_copy()
        self._bookings[stored.id] = stored
        if stored.payment_intent_id:
            self._by_intent[stored.payment_intent_id] = stored.id
        return stored.model_copy()

    async def get(self, booking_id: str) -> Booking | None:
        booking = self._bookings.get(booking_id)
        return booking.model_copy() if booking else None

    async def get_by_payment_intent(self, payment_intent_id: str) -> Booking | None:
        booking_id = self._by_intent.get(payment_intent_id)
        return await self.get(booking_id) if booking_id else None

    async def advance_status(self, booking_id: str, status: PaymentStatus) -> Booking | None:
        async with self._locks[booking_id]:
            current = self._bookings.get(booking_id)
            if current is None or not current.payment_status.can_advance_to(status):
                return None
            updated = current.model_copy(
                update={"payment_status": status, "updated_at": datetime.now(timezone.utc)}
            )
            self._bookings[booking_id] = updated
            self.transitions.append((booking_id, status))
            return updated.model_copy()

    def all(self) -> Iterable[Booking]:
        return [booking.model_copy() for booking in self._bookings.values()]


class PostgresBookingRepository:
    """PostgreSQL storage through an asyncpg pool."""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def create_schema(self) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(CREATE_TABLES_SQL)

    async def insert(self, booking: Booking) -> Booking:
        columns = ", ".join(BOOKING_COLUMNS)
        placeholders = ", ".join(f"${i}" for i in range(1, len(BOOKING_COLUMNS) + 1))
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    f"INSERT INTO bookings ({columns}) VALUES ({placeholders}) RETURNING *",
                    *booking_to_row(booking),
                )
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError("Failed to create booking", details=str(e)) from e
        return row_to_booking(row)

    async def get(self, booking_id: str) -> Booking | None:
        key = _parse_uuid(booking_id)
        if key is None:
            return None
        return await self._fetch_one("SELECT * FROM bookings WHERE id = $1", key)

    async def get_by_payment_intent(self, payment_intent_id: str) -> Booking | None:
        return await self._fetch_one(
            "SELECT * FROM bookings WHERE payment_intent_id = $1", payment_intent_id
        )

    async def advance_status(self, booking_id: str, status: PaymentStatus) -> Booking | None:
        key = _parse_uuid(booking_id)
        if key is None:
            return None
        # Conditional update; concurrent writers serialize on the row lock
        return await self._fetch_one(
            """
            UPDATE bookings
            SET payment_status = $2, updated_at = NOW()
            WHERE id = $1 AND payment_status = 'pending'
            RETURNING *
            """,
            key,
            status.value,
        )

    async def _fetch_one(self, query: str, *args) -> Booking | None:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError("Booking storage unavailable", details=str(e)) from e
        return row_to_booking(row) if row else None


def _parse_uuid(value: str) -> UUID | None:
    try:
        return UUID(str(value))
    except ValueError:
        return None


# =============================================================================
# Ledger
# =============================================================================


class BookingLedger:
    """
    Owns booking creation and payment status transitions.

    Payment status only advances: ``pending`` may become ``completed`` or
    ``succeeded``; terminal statuses never change again, so duplicate or
    late notifications are no-ops.
    """

    def __init__(self, repository: BookingRepository, free_discount_codes: Iterable[str] = ("TESTFREE",)):
        self.repository = repository
        self.free_discount_codes = {code.strip() for code in free_discount_codes}

    def requires_payment(self, validated: ValidatedBooking) -> bool:
        """A payment is taken unless the total is zero or a full-discount code (exact match) applies."""
        if validated.total <= 0:
            return False
        return (validated.discount_code or "").strip() not in self.free_discount_codes

    async def create(self, validated: ValidatedBooking, payment_intent_id: str | None = None) -> Booking:
        """
        Persist a new booking.

        Raises:
            PersistenceError: If storage rejects the write
        """
        status = PaymentStatus.PENDING if self.requires_payment(validated) else PaymentStatus.COMPLETED
        booking = Booking.from_validated(validated, status, payment_intent_id)
        saved = await self.repository.insert(booking)
        logger.info(
            "booking_created",
            booking_id=saved.id,
            payment_status=saved.payment_status.value,
            payment_intent_id=saved.payment_intent_id,
        )
        return saved

    async def find_by_id(self, booking_id: str) -> Booking:
        booking = await self.repository.get(booking_id)
        if booking is None:
            raise BookingNotFound(booking_id=booking_id)
        return booking

    async def find_by_payment_intent(self, payment_intent_id: str) -> Booking:
        booking = await self.repository.get_by_payment_intent(payment_intent_id)
        if booking is None:
            raise BookingNotFound(payment_intent_id=payment_intent_id)
        return booking

    async def set_payment_status(
        self,
        status: PaymentStatus,
        *,
        booking_id: str | None = None,
        payment_intent_id: str | None = None,
    ) -> StatusChange:
        """
        Advance a booking's payment status, located by booking or intent id.

        Args:
            status: Target status
            booking_id: Booking identifier
            payment_intent_id: Provider payment-intent identifier

        Returns:
            StatusChange with the current booking and whether it moved

        Raises:
            BookingNotFound: If no booking matches
        """
        if (booking_id is None) == (payment_intent_id is None):
            raise ValueError("Exactly one of booking_id or payment_intent_id is required")

        if booking_id is not None:
            booking = await self.find_by_id(booking_id)
        else:
            booking = await self.find_by_payment_intent(payment_intent_id)

        if not booking.payment_status.can_advance_to(status):
            return StatusChange(booking=booking, changed=False)

        updated = await self.repository.advance_status(booking.id, status)
        if updated is None:
            # Lost the race to a concurrent writer; report its result
            return StatusChange(booking=await self.find_by_id(booking.id), changed=False)

        logger.info(
            "booking_payment_status_changed",
            booking_id=updated.id,
            payment_status=updated.payment_status.value,
            payment_intent_id=updated.payment_intent_id,
        )
        return StatusChange(booking=updated, changed=True)
