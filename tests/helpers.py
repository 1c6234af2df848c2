"""Fakes and payload builders shared by the test modules."""

import asyncio
import json
from itertools import count
from typing import Any

from villapura.errors import InvalidSignature, PaymentProviderError
from villapura.models.booking import Booking
from villapura.services.payments import PaymentIntent

FEED_URL = "https://calendar.test/villa-pura.ics"
VALID_SIGNATURE = "t=1,v1=valid"


ICS_FEED = "\r\n".join([
    "BEGIN:VCALENDAR",
    "VERSION:2.0",
    "PRODID:-//Test//Villa Pura//EN",
    "BEGIN:VEVENT",
    "UID:allday-1@calendar.test",
    "DTSTART;VALUE=DATE:20250310",
    "DTEND;VALUE=DATE:20250314",
    "SUMMARY:Reserved",
    "END:VEVENT",
    "BEGIN:VEVENT",
    "UID:timed-1@calendar.test",
    "DTSTART:20250401T170000Z",
    "DTEND:20250405T030000Z",
    "SUMMARY:Not available",
    "END:VEVENT",
    "BEGIN:VEVENT",
    "UID:cancelled-1@calendar.test",
    "DTSTART;VALUE=DATE:20250501",
    "DTEND;VALUE=DATE:20250502",
    "STATUS:CANCELLED",
    "SUMMARY:Cancelled hold",
    "END:VEVENT",
    "END:VCALENDAR",
    "",
])


# =============================================================================
# Fakes
# =============================================================================


class FakeGateway:
    """In-memory payment gateway; signature 'valid' passes verification."""

    def __init__(self) -> None:
        self.created: list[dict[str, Any]] = []
        self.statuses: dict[str, str] = {}
        self.fail_create = False
        self._ids = count(1)

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt_email: str,
        description: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        await asyncio.sleep(0)
        if self.fail_create:
            raise PaymentProviderError("Payment provider error", details="card_declined")
        intent_id = f"pi_test_{next(self._ids)}"
        self.created.append({
            "id": intent_id,
            "amount_minor": amount_minor,
            "currency": currency,
            "receipt_email": receipt_email,
            "description": description,
            "metadata": metadata,
        })
        self.statuses[intent_id] = "requires_payment_method"
        return PaymentIntent(
            id=intent_id,
            status="requires_payment_method",
            client_secret=f"{intent_id}_secret_abc",
        )

    async def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        await asyncio.sleep(0)
        if intent_id not in self.statuses:
            raise PaymentProviderError("Payment provider error", details=f"No such payment_intent: {intent_id}")
        return PaymentIntent(id=intent_id, status=self.statuses[intent_id])

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        if signature != VALID_SIGNATURE:
            raise InvalidSignature("No signatures found matching the expected signature for payload")
        return json.loads(payload)


class RecordingNotifier:
    """Post-commit hook that records bookings, optionally failing."""

    def __init__(self, fail: bool = False) -> None:
        self.bookings: list[Booking] = []
        self.fail = fail

    async def __call__(self, booking: Booking) -> None:
        self.bookings.append(booking)
        if self.fail:
            raise RuntimeError("email provider down")


def succeeded_event(intent_id: str) -> bytes:
    return json.dumps({
        "id": "evt_test_1",
        "object": "event",
        "type": "payment_intent.succeeded",
        "data": {"object": {"id": intent_id, "object": "payment_intent", "status": "succeeded"}},
    }).encode()


def booking_payload(**overrides: Any) -> dict[str, Any]:
    payload = {
        "firstName": "Ayu",
        "lastName": "Lestari",
        "email": "ayu@example.com",
        "startDate": "2025-06-10",
        "endDate": "2025-06-14",
        "adults": 2,
        "kids": 1,
        "total": "150.00",
        "arrivalTime": "15:00",
        "specialRequests": "Airport pickup",
    }
    payload.update(overrides)
    return payload

