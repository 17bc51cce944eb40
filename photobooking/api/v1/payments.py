"""Payment routes: Stripe Checkout for a booking and session verification."""

import logging

import stripe
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.api.deps import get_current_active_user, get_db
from photobooking.booking.errors import InvalidTransition, NotFound, Unauthorized
from photobooking.booking.lifecycle import Actor
from photobooking.config import settings
from photobooking.models.user import User
from photobooking.schemas.payment import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    PaymentVerificationResponse,
)
from photobooking.services import booking_service
from photobooking.services.payment_service import booking_for_session, record_session_payment
from photobooking.services.stripe_client import create_checkout_session, retrieve_checkout_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


def _gateway_error(exc: stripe.StripeError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


@router.post("/checkout-session", response_model=CheckoutSessionResponse)
async def create_booking_checkout(
    body: CheckoutSessionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> CheckoutSessionResponse:
    """Create a Stripe Checkout Session for one of the caller's payable bookings."""
    booking = await booking_service.load_booking(db, body.booking_id)
    if booking.client_id != current_user.id:
        raise Unauthorized("You can only pay for your own bookings")
    if not booking.is_payable:
        raise InvalidTransition(
            f"This booking cannot be paid (status '{booking.status}', payment '{booking.payment_status}')"
        )

    try:
        checkout = await create_checkout_session(
            booking,
            customer_email=current_user.email,
            success_url=f"{settings.frontend_url}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=f"{settings.frontend_url}/bookings/{booking.id}",
        )
    except stripe.StripeError as e:
        logger.error("Stripe checkout error for booking %s: %s", booking.id, e)
        raise _gateway_error(e) from e

    booking.stripe_session_id = checkout.id
    await db.flush()
    logger.info("Checkout session %s created for booking %s", checkout.id, booking.id)
    return CheckoutSessionResponse(session_id=checkout.id, url=checkout.url)


@router.get("/verify/{session_id}", response_model=PaymentVerificationResponse)
async def verify_payment(
    session_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PaymentVerificationResponse:
    """Check a Checkout Session with Stripe and record the payment when it is paid."""
    try:
        checkout = await retrieve_checkout_session(session_id)
    except stripe.StripeError as e:
        logger.error("Stripe session lookup failed for %s: %s", session_id, e)
        raise _gateway_error(e) from e

    booking = await booking_for_session(db, checkout)
    if booking is None:
        raise NotFound("No booking matches this payment session")

    actor = Actor(id=current_user.id, role=current_user.role)
    if not actor.is_admin and booking.client_id != actor.id:
        raise Unauthorized("You do not have access to this booking")

    await record_session_payment(db, booking, checkout)

    return PaymentVerificationResponse(
        booking_id=booking.id,
        payment_status=booking.payment_status,
        status=booking.status,
        needs_confirmation=booking.needs_confirmation,
    )
