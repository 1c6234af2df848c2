"""Booking confirmation emails sent through Resend."""

import asyncio
import html
from typing import Any

import resend

from villapura.models.booking import Booking
from villapura.utils.logger import get_logger

logger = get_logger(__name__)

PROPERTY_NAME = "Villa Pura Bali"
CHECK_IN_TIME = "2:00 PM"
CHECK_OUT_TIME = "11:00 AM"


def _text(value: Any, fallback: str) -> str:
    return html.escape(str(value)) if value else fallback


def _details_html(booking: Booking, include_contact: bool) -> str:
    rows = [f"<p><strong>Booking ID:</strong> {booking.id}</p>"]
    if include_contact:
        rows.append(f"<p><strong>Guest:</strong> {html.escape(booking.guest_name)}</p>")
        rows.append(f"<p><strong>Email:</strong> {html.escape(booking.email)}</p>")
    rows.extend([
        f"<p><strong>Check-in:</strong> {booking.check_in_date.strftime('%d/%m/%Y')} at {CHECK_IN_TIME}</p>",
        f"<p><strong>Check-out:</strong> {booking.check_out_date.strftime('%d/%m/%Y')} at {CHECK_OUT_TIME}</p>",
        f"<p><strong>Guests:</strong> {booking.adults} adults, {booking.kids} kids</p>",
        f"<p><strong>Total:</strong> AUD ${booking.total:.2f}</p>",
        f"<p><strong>Arrival Time:</strong> {_text(booking.arrival_time, 'Not specified')}</p>",
        f"<p><strong>Special Requests:</strong> {_text(booking.special_requests, 'None')}</p>",
        f"<p><strong>Discount Code:</strong> {_text(booking.discount_code, 'None')}</p>",
    ])
    return "\n".join(rows)


def render_guest_email(booking: Booking) -> tuple[str, str]:
    """Build subject and HTML body of the guest confirmation."""
    body = "\n".join([
        "<h1>Booking Confirmed!</h1>",
        f"<p>Thank you, {html.escape(booking.guest_name)}, for booking with {PROPERTY_NAME}.</p>",
        _details_html(booking, include_contact=False),
        "<p>We look forward to welcoming you!</p>",
    ])
    return f"Booking Confirmation - {PROPERTY_NAME}", body


def render_owner_email(booking: Booking) -> tuple[str, str]:
    """Build subject and HTML body of the owner notification."""
    body = "\n".join([
        "<h1>New Booking Received</h1>",
        f"<p>A new booking has been made for {PROPERTY_NAME}.</p>",
        _details_html(booking, include_contact=True),
    ])
    return f"New Booking Notification - {PROPERTY_NAME}", body


class BookingNotifier:
    """
    Sends guest and owner emails after a booking is stored.

    Runs as a post-commit hook: a delivery failure is logged by the caller
    and never undoes the booking.

    Usage:
        notifier = BookingNotifier(api_key, sender, owner_email)
        await notifier(booking)
    """

    def __init__(
        self,
        api_key: str,
        sender: str,
        owner_email: str | None,
        timeout: float = 10.0,
    ):
        self.api_key = api_key
        self.sender = sender
        self.owner_email = owner_email
        self.timeout = timeout

    async def __call__(self, booking: Booking) -> None:
        await self.send_booking_emails(booking)

    async def send_booking_emails(self, booking: Booking) -> None:
        if not self.api_key:
            logger.warning("email_not_configured", booking_id=booking.id)
            return

        subject, body = render_guest_email(booking)
        await self._send(booking.email, subject, body, booking_id=booking.id)

        if not self.owner_email:
            logger.error("owner_email_not_configured", booking_id=booking.id)
            return
        subject, body = render_owner_email(booking)
        await self._send(self.owner_email, subject, body, booking_id=booking.id)

    async def _send(self, to: str, subject: str, body: str, booking_id: str) -> None:
        params = {
            "from": self.sender,
            "to": to,
            "subject": subject,
            "html": body,
        }
        resend.api_key = self.api_key
        response = await asyncio.wait_for(
            asyncio.to_thread(resend.Emails.send, params),
            timeout=self.timeout,
        )
        logger.info("email_sent", booking_id=booking_id, subject=subject, email_id=_email_id(response))


def _email_id(response: Any) -> str | None:
    if isinstance(response, dict):
        return response.get("id")
    return getattr(response, "id", None)
