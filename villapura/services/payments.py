"""Payment-intent provider gateway and booking payment reconciliation."""

import asyncio
import functools
import json
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Callable, Protocol, TypeVar

import stripe

from villapura.errors import (
    BookingNotFound,
    InvalidSignature,
    MissingPaymentReference,
    PaymentAuthorizationFailed,
    PaymentIntentMismatch,
    PaymentNotSucceeded,
    PaymentProviderError,
)
from villapura.models.booking import PaymentStatus
from villapura.services.ledger import BookingLedger
from villapura.utils.logger import get_logger, mask_sensitive

logger = get_logger(__name__)

T = TypeVar("T")

PAYMENT_SUCCEEDED_EVENT = "payment_intent.succeeded"


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class PaymentIntent:
    """Provider payment intent, reduced to what the booking flow needs."""

    id: str
    status: str
    client_secret: str | None = None


@dataclass
class Authorization:
    """Client-side handle of a freshly created payment intent."""

    client_secret: str
    intent_id: str


@dataclass
class WebhookOutcome:
    """Result of processing one provider webhook delivery."""

    event_type: str
    handled: bool = False
    booking_id: str | None = None
    changed: bool = False


# =============================================================================
# Gateway
# =============================================================================


class PaymentGateway(Protocol):
    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt_email: str,
        description: str,
        metadata: dict[str, str],
    ) -> PaymentIntent: ...

    async def retrieve_intent(self, intent_id: str) -> PaymentIntent: ...

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]: ...


class StripePaymentGateway:
    """
    Stripe implementation of the payment gateway.

    SDK calls are blocking; they run in a worker thread and are abandoned
    after ``timeout`` seconds, which counts as a provider failure.
    """

    def __init__(self, api_key: str, webhook_secret: str, timeout: float = 10.0):
        self.api_key = api_key
        self.webhook_secret = webhook_secret
        self.timeout = timeout

    async def create_intent(
        self,
        amount_minor: int,
        currency: str,
        receipt_email: str,
        description: str,
        metadata: dict[str, str],
    ) -> PaymentIntent:
        intent = await self._call(
            "create_intent",
            stripe.PaymentIntent.create,
            api_key=self.api_key,
            amount=amount_minor,
            currency=currency,
            description=description,
            receipt_email=receipt_email,
            metadata=metadata,
        )
        return PaymentIntent(id=intent.id, status=intent.status, client_secret=intent.client_secret)

    async def retrieve_intent(self, intent_id: str) -> PaymentIntent:
        intent = await self._call(
            "retrieve_intent",
            stripe.PaymentIntent.retrieve,
            intent_id,
            api_key=self.api_key,
        )
        return PaymentIntent(id=intent.id, status=intent.status, client_secret=intent.client_secret)

    def construct_event(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Verify a webhook delivery and decode its event.

        Raises:
            InvalidSignature: On a missing secret, missing or wrong signature,
                or an undecodable payload
        """
        if not self.webhook_secret:
            raise InvalidSignature("webhook secret not configured")
        if not signature:
            raise InvalidSignature("missing signature header")
        try:
            stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise InvalidSignature(str(e)) from e
        except ValueError as e:
            raise InvalidSignature(f"invalid payload: {e}") from e
        # Verified; decode the raw payload to plain dicts
        return json.loads(payload)

    async def _call(self, operation: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(functools.partial(func, *args, **kwargs)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("stripe_timeout", operation=operation, timeout=self.timeout)
            raise PaymentProviderError("Payment provider timed out", details=operation) from e
        except stripe.StripeError as e:
            logger.error("stripe_error", operation=operation, error=str(e))
            raise PaymentProviderError("Payment provider error", details=str(e)) from e


# =============================================================================
# Reconciler
# =============================================================================


def to_minor_units(amount: Decimal) -> int:
    """Convert a currency amount to minor units (150.00 -> 15000)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class PaymentReconciler:
    """
    Bridges the provider's payment-intent lifecycle to booking status.

    Completion arrives through two independent signals, the client's
    confirm call and the provider webhook. Both funnel into the ledger's
    forward-only status update, so they converge on ``succeeded`` in any
    order.
    """

    def __init__(
        self,
        gateway: PaymentGateway,
        ledger: BookingLedger,
        currency: str = "aud",
        description: str = "Villa Pura Bali Booking",
    ):
        self.gateway = gateway
        self.ledger = ledger
        self.currency = currency
        self.description = description

    async def authorize(self, amount: Decimal, email: str, metadata: dict[str, str]) -> Authorization:
        """
        Create a payment intent for a booking about to be persisted.

        Raises:
            PaymentAuthorizationFailed: If the provider call fails
        """
        amount_minor = to_minor_units(amount)
        try:
            intent = await self.gateway.create_intent(
                amount_minor=amount_minor,
                currency=self.currency,
                receipt_email=email,
                description=self.description,
                metadata=metadata,
            )
        except PaymentProviderError as e:
            logger.error("payment_authorization_failed", amount_minor=amount_minor, error=e.details)
            raise PaymentAuthorizationFailed(e.details or e.message) from e

        if not intent.client_secret:
            raise PaymentAuthorizationFailed(f"payment intent {intent.id} has no client secret")

        logger.info(
            "payment_authorized",
            payment_intent_id=intent.id,
            amount_minor=amount_minor,
            currency=self.currency,
        )
        return Authorization(client_secret=intent.client_secret, intent_id=intent.id)

    async def confirm(self, booking_id: str | None, intent_id: str | None) -> PaymentStatus:
        """
        Client-driven completion: check the intent and mark the booking paid.

        Raises:
            MissingPaymentReference: If either id is missing
            BookingNotFound: If the booking does not exist
            PaymentIntentMismatch: If the booking is not linked to this intent
            PaymentNotSucceeded: If the provider reports any other status
            PaymentProviderError: If the provider call fails
        """
        if not booking_id or not intent_id:
            raise MissingPaymentReference()

        booking = await self.ledger.find_by_id(booking_id)
        if booking.payment_intent_id != intent_id:
            logger.warning(
                "payment_confirm_intent_mismatch",
                booking_id=booking_id,
                payment_intent_id=intent_id,
            )
            raise PaymentIntentMismatch(booking_id, intent_id)

        intent = await self.gateway.retrieve_intent(intent_id)
        if intent.status != PaymentStatus.SUCCEEDED.value:
            logger.warning(
                "payment_not_succeeded",
                booking_id=booking_id,
                payment_intent_id=intent_id,
                provider_status=intent.status,
            )
            raise PaymentNotSucceeded(intent.status)

        change = await self.ledger.set_payment_status(PaymentStatus.SUCCEEDED, booking_id=booking_id)
        logger.info(
            "payment_confirmed",
            booking_id=booking_id,
            payment_intent_id=intent_id,
            changed=change.changed,
        )
        return change.booking.payment_status

    async def handle_webhook(self, payload: bytes, signature: str | None) -> WebhookOutcome:
        """
        Provider-driven completion.

        Unknown intents are accepted so the provider does not retry a
        delivery that can never match.

        Raises:
            InvalidSignature: If the delivery cannot be verified
        """
        try:
            event = self.gateway.construct_event(payload, signature)
        except InvalidSignature as e:
            logger.warning(
                "webhook_signature_invalid",
                reason=e.reason,
                signature=mask_sensitive(signature),
            )
            raise

        event_type = str(event.get("type", ""))
        outcome = WebhookOutcome(event_type=event_type)
        if event_type != PAYMENT_SUCCEEDED_EVENT:
            logger.info("webhook_event_ignored", event_type=event_type)
            return outcome

        intent_id = ((event.get("data") or {}).get("object") or {}).get("id")
        outcome.handled = True
        if not intent_id:
            logger.warning("webhook_event_without_intent", event_id=event.get("id"))
            return outcome

        try:
            change = await self.ledger.set_payment_status(
                PaymentStatus.SUCCEEDED, payment_intent_id=intent_id
            )
        except BookingNotFound:
            logger.warning("webhook_booking_not_found", payment_intent_id=intent_id)
            return outcome

        outcome.booking_id = change.booking.id
        outcome.changed = change.changed
        logger.info(
            "webhook_payment_succeeded",
            booking_id=change.booking.id,
            payment_intent_id=intent_id,
            changed=change.changed,
        )
        return outcome
