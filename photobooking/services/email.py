"""Email collaborator: templated booking emails and the sender interface.

Delivery itself is out of scope. The application builds one ``EmailSender``
at startup (``LoggingEmailSender`` by default) and hands it to the booking
service. Messages are rendered when the booking changes and sent only after
the request transaction commits.
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.config import settings
from photobooking.database import after_commit
from photobooking.models.booking import Booking
from photobooking.models.user import User

logger = logging.getLogger(__name__)

TEMPLATES = {
    "booking_confirmation": {
        "subject": "Booking Confirmed: {service_name} on {booking_date}",
        "body": (
            "Dear {client_name},\n\n"
            "Your {service_name} session has been confirmed.\n\n"
            "Booking Details:\n"
            "- Date: {booking_date}\n"
            "- Time: {start_time} - {end_time}\n"
            "- Participants: {participants}\n"
            "- Location: {location}\n"
            "- Photographer: {photographer}\n"
            "- Total: {total_amount} {currency}\n\n"
            "We look forward to seeing you!\n\n"
            "Best regards,\n{app_name}"
        ),
    },
    "booking_cancellation": {
        "subject": "Booking Cancelled: {service_name} on {booking_date}",
        "body": (
            "Dear {client_name},\n\n"
            "Your {service_name} session on {booking_date} "
            "({start_time} - {end_time}) has been cancelled.\n\n"
            "Reason: {reason}\n\n"
            "If you have any questions, please don't hesitate to contact us.\n\n"
            "Best regards,\n{app_name}"
        ),
    },
    "booking_reminder": {
        "subject": "Reminder: your {service_name} session on {booking_date}",
        "body": (
            "Dear {client_name},\n\n"
            "This is a reminder that your {service_name} session is coming up.\n\n"
            "- Date: {booking_date}\n"
            "- Time: {start_time} - {end_time}\n"
            "- Location: {location}\n"
            "- Photographer: {photographer}\n\n"
            "We look forward to seeing you!\n\n"
            "Best regards,\n{app_name}"
        ),
    },
}

VALID_TEMPLATES = set(TEMPLATES.keys())


@dataclass(frozen=True)
class EmailMessage:
    recipient: str
    subject: str
    body: str
    template: str


class EmailSender(Protocol):
    """Anything that can deliver a rendered ``EmailMessage``."""

    async def send(self, message: EmailMessage) -> None: ...


class LoggingEmailSender:
    """Default sender: logs the rendered message instead of delivering it."""

    async def send(self, message: EmailMessage) -> None:
        logger.info(
            "Email sent [%s] from %s to %s: %s",
            message.template,
            settings.email_from_address,
            message.recipient,
            message.subject,
        )


def render_booking_email(template: str, booking: Booking, client: User, reason: str | None = None) -> EmailMessage:
    """Fill ``template`` with booking and client details.

    Raises:
        ValueError: If ``template`` is not a known template name.
    """
    if template not in VALID_TEMPLATES:
        raise ValueError(f"Invalid template '{template}'. Must be one of: {', '.join(sorted(VALID_TEMPLATES))}")

    template_vars = {
        "app_name": settings.app_name,
        "client_name": client.full_name,
        "service_name": booking.service.name if booking.service is not None else "photography",
        "booking_date": booking.booking_date.isoformat(),
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "participants": str(booking.participants_count),
        "location": booking.location_type,
        "photographer": booking.photographer_name,
        "total_amount": str(booking.total_amount),
        "currency": booking.currency,
        "reason": reason or booking.cancellation_reason or "Not specified",
    }

    tmpl = TEMPLATES[template]
    return EmailMessage(
        recipient=client.email,
        subject=tmpl["subject"].format(**template_vars),
        body=tmpl["body"].format(**template_vars),
        template=template,
    )


async def deliver_email(sender: EmailSender, message: EmailMessage) -> bool:
    """Send a rendered message; failures are logged, never raised."""
    try:
        await sender.send(message)
    except Exception:
        logger.exception("Failed to send %s email to %s", message.template, message.recipient)
        return False
    return True


def queue_booking_email(
    db: AsyncSession,
    sender: EmailSender | None,
    template: str,
    booking: Booking,
    client: User,
    reason: str | None = None,
) -> bool:
    """Render a booking email now and send it once ``db`` commits.

    Returns True when a message was queued. Nothing is sent if the
    transaction rolls back.
    """
    if sender is None or not settings.email_enabled:
        logger.debug("Email dispatch disabled, skipping %s for booking %s", template, booking.id)
        return False

    try:
        message = render_booking_email(template, booking, client, reason)
    except ValueError:
        logger.exception("Failed to render %s email for booking %s", template, booking.id)
        return False

    after_commit(db, partial(deliver_email, sender, message))
    return True
