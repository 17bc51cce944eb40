"""Payment collaborator: turn Stripe Checkout results into payment records."""

import logging
import uuid

import stripe
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.booking.errors import NotFound
from photobooking.models.booking import Booking
from photobooking.services import booking_service

logger = logging.getLogger(__name__)


async def booking_for_session(db: AsyncSession, checkout_session: stripe.checkout.Session) -> Booking | None:
    metadata = getattr(checkout_session, "metadata", None) or {}
    booking_ref = metadata.get("booking_id")
    if booking_ref:
        try:
            return await booking_service.load_booking(db, uuid.UUID(booking_ref))
        except (ValueError, NotFound):
            logger.warning("Checkout session %s references unknown booking %s", checkout_session.id, booking_ref)
    return await booking_service.get_booking_by_checkout_session(db, checkout_session.id)


async def apply_checkout_session(db: AsyncSession, checkout_session: stripe.checkout.Session) -> Booking | None:
    """Record the payment carried by a Checkout Session, if it is paid.

    Returns the booking the session belongs to, or ``None`` if it matches
    no booking.
    """
    booking = await booking_for_session(db, checkout_session)
    if booking is None:
        logger.warning("No booking found for checkout session %s", checkout_session.id)
        return None

    await record_session_payment(db, booking, checkout_session)
    return booking


async def record_session_payment(
    db: AsyncSession, booking: Booking, checkout_session: stripe.checkout.Session
) -> bool:
    paid = getattr(checkout_session, "payment_status", None) == "paid"
    return await booking_service.record_payment(
        db,
        booking,
        paid=paid,
        reference=getattr(checkout_session, "payment_intent", None),
    )


async def handle_checkout_session_completed(db: AsyncSession, event: stripe.Event) -> None:
    """Handle checkout.session.completed: record payment for the booking."""
    checkout_session = event.data.object
    booking = await apply_checkout_session(db, checkout_session)
    if booking is not None:
        logger.info(
            "Checkout completed: booking %s payment status is %s",
            booking.id,
            booking.payment_status,
        )


EVENT_HANDLERS = {
    "checkout.session.completed": handle_checkout_session_completed,
    "checkout.session.async_payment_succeeded": handle_checkout_session_completed,
}
