"""Async Stripe API wrapper for booking payments."""

import logging
from decimal import ROUND_HALF_UP, Decimal

import stripe
from stripe import StripeClient

from photobooking.config import settings
from photobooking.models.booking import Booking

logger = logging.getLogger(__name__)


def get_stripe_client() -> StripeClient:
    """Create a StripeClient instance with async HTTP support."""
    return StripeClient(
        settings.stripe_secret_key,
        http_client=stripe.HTTPXClient(),
    )


def to_minor_units(amount: Decimal) -> int:
    """Convert a decimal amount to the integer minor units Stripe expects."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


async def create_checkout_session(
    booking: Booking,
    customer_email: str,
    success_url: str,
    cancel_url: str,
) -> stripe.checkout.Session:
    """Create a one-off Checkout Session charging the booking's total amount."""
    client = get_stripe_client()
    logger.info(
        "Creating checkout session for booking %s (%s %s)",
        booking.id,
        booking.total_amount,
        booking.currency,
    )
    service_name = booking.service.name if booking.service is not None else "Photography session"
    return await client.v1.checkout.sessions.create_async(
        params={
            "mode": "payment",
            "customer_email": customer_email,
            "line_items": [
                {
                    "price_data": {
                        "currency": booking.currency.lower(),
                        "unit_amount": to_minor_units(booking.total_amount),
                        "product_data": {
                            "name": service_name,
                            "description": f"{booking.booking_date} {booking.start_time}-{booking.end_time}",
                        },
                    },
                    "quantity": 1,
                }
            ],
            "metadata": {"booking_id": str(booking.id)},
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
    )


async def retrieve_checkout_session(session_id: str) -> stripe.checkout.Session:
    """Retrieve a Checkout Session by ID."""
    client = get_stripe_client()
    return await client.v1.checkout.sessions.retrieve_async(session_id)


def construct_webhook_event(payload: bytes, sig_header: str) -> stripe.Event:
    """Verify and construct a Stripe webhook event (synchronous)."""
    client = get_stripe_client()
    return client.construct_event(payload, sig_header, settings.stripe_webhook_secret)
