"""Booking API routes: submission, payment confirmation, provider webhook."""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from villapura.api.dependencies import get_booking_service, get_reconciler
from villapura.errors import BookingSystemError
from villapura.models.booking import BookingSubmission
from villapura.services.booking_service import BookingService
from villapura.services.payments import PaymentReconciler
from villapura.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/bookings", tags=["Bookings"])

SIGNATURE_HEADER = "stripe-signature"


# =============================================================================
# Request/Response Models
# =============================================================================


class BookingCreatedResponse(BaseModel):
    """Response of a successful booking submission."""
    model_config = ConfigDict(populate_by_name=True)

    client_secret: Optional[str] = Field(None, alias="clientSecret")
    booking_id: str = Field(alias="bookingId")
    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")


class ConfirmPaymentRequest(BaseModel):
    """Client-side payment completion."""
    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: Optional[str] = Field(None, alias="paymentIntentId")
    booking_id: Optional[str] = Field(None, alias="bookingId")


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=BookingCreatedResponse)
async def create_booking(
    submission: BookingSubmission,
    service: BookingService = Depends(get_booking_service),
):
    """
    Submit a booking.

    Creates a payment intent when the total is positive and no full-discount
    code applies; the returned client secret completes payment in the browser.
    """
    try:
        receipt = await service.submit(submission)
    except BookingSystemError:
        raise
    except Exception as e:
        logger.error("booking_error", error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to create booking", "details": str(e)},
        )
    return receipt.to_response()


@router.post("/confirm-payment")
async def confirm_payment(
    body: ConfirmPaymentRequest,
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    """Mark a booking paid once the provider reports the intent succeeded."""
    try:
        status = await reconciler.confirm(body.booking_id, body.payment_intent_id)
    except BookingSystemError as e:
        if e.status_code < 500:
            raise
        logger.error("confirm_payment_error", booking_id=body.booking_id, error=e.details or e.message)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to confirm payment", "details": e.details or e.message},
        )
    except Exception as e:
        logger.error("confirm_payment_error", booking_id=body.booking_id, error=str(e), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to confirm payment", "details": str(e)},
        )
    return {"status": status.value}


@router.post("/webhook")
async def payment_webhook(
    request: Request,
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    """
    Payment provider webhook.

    The raw body is verified against the signature header; unverifiable
    deliveries are rejected with 400.
    """
    payload = await request.body()
    await reconciler.handle_webhook(payload, request.headers.get(SIGNATURE_HEADER))
    return {"received": True}
