"""Booking submission pipeline: validate, authorize, persist, notify."""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from villapura.errors import BookingPersistenceFailed, PersistenceError
from villapura.models.booking import Booking, BookingSubmission
from villapura.services.ledger import BookingLedger
from villapura.services.payments import PaymentReconciler
from villapura.services.validation import BookingValidator
from villapura.utils.logger import get_logger

logger = get_logger(__name__)

PostCommitHook = Callable[[Booking], Awaitable[None]]


@dataclass
class BookingReceipt:
    """Result of a successful booking submission."""

    booking: Booking
    client_secret: str | None = None
    payment_intent_id: str | None = None

    def to_response(self) -> dict:
        return {
            "clientSecret": self.client_secret,
            "bookingId": self.booking.id,
            "paymentIntentId": self.payment_intent_id,
        }


class BookingService:
    """
    Orchestrates a booking submission.

    Pipeline:
    1. Validate the request
    2. Authorize a payment when one is required
    3. Persist the booking
    4. Schedule post-commit hooks (emails) in the background; their
       failures are only logged and never delay the response
    """

    def __init__(
        self,
        validator: BookingValidator,
        ledger: BookingLedger,
        reconciler: PaymentReconciler,
        post_commit_hooks: Sequence[PostCommitHook] = (),
    ):
        self.validator = validator
        self.ledger = ledger
        self.reconciler = reconciler
        self.post_commit_hooks = list(post_commit_hooks)
        self._hook_tasks: set[asyncio.Task] = set()

    async def submit(self, submission: BookingSubmission) -> BookingReceipt:
        """
        Run the booking pipeline.

        Raises:
            ValidationError: On invalid input (nothing persisted)
            PaymentAuthorizationFailed: If the provider rejects the intent
                (nothing persisted)
            BookingPersistenceFailed: If storage fails after authorization
            PersistenceError: If storage fails for a booking without payment
        """
        validated = self.validator.validate(submission)

        client_secret = None
        payment_intent_id = None
        if self.ledger.requires_payment(validated):
            authorization = await self.reconciler.authorize(
                validated.total,
                validated.email,
                metadata={
                    "guestName": validated.guest_name,
                    "email": validated.email,
                    "checkInDate": validated.check_in_date.isoformat(),
                    "checkOutDate": validated.check_out_date.isoformat(),
                },
            )
            client_secret = authorization.client_secret
            payment_intent_id = authorization.intent_id

        try:
            booking = await self.ledger.create(validated, payment_intent_id)
        except PersistenceError as e:
            if payment_intent_id is None:
                raise
            logger.error(
                "booking_persist_failed_after_authorization",
                payment_intent_id=payment_intent_id,
                email_domain=validated.email.rsplit("@", 1)[-1],
                error=e.details or e.message,
            )
            raise BookingPersistenceFailed(e.details or e.message, payment_intent_id) from e

        self._schedule_post_commit_hooks(booking)

        logger.info(
            "calendar_update_needed",
            booking_id=booking.id,
            check_in=booking.check_in_date.isoformat(),
            check_out=booking.check_out_date.isoformat(),
        )
        return BookingReceipt(
            booking=booking,
            client_secret=client_secret,
            payment_intent_id=payment_intent_id,
        )

    def _schedule_post_commit_hooks(self, booking: Booking) -> None:
        if not self.post_commit_hooks:
            return
        task = asyncio.create_task(self._run_post_commit_hooks(booking))
        self._hook_tasks.add(task)
        task.add_done_callback(self._hook_tasks.discard)

    async def drain(self) -> None:
        """Wait for scheduled post-commit hooks to finish."""
        while self._hook_tasks:
            await asyncio.gather(*tuple(self._hook_tasks))

    async def _run_post_commit_hooks(self, booking: Booking) -> None:
        for hook in self.post_commit_hooks:
            try:
                await hook(booking)
            except Exception as e:
                logger.error(
                    "post_commit_hook_failed",
                    booking_id=booking.id,
                    hook=getattr(hook, "__name__", type(hook).__name__),
                    error=str(e),
                    exc_info=True,
                )
