"""Stripe webhook endpoint: receives and processes Stripe events."""

import logging

import stripe
from fastapi import APIRouter, HTTPException, Request, status

from photobooking.database import async_session_factory
from photobooking.services.payment_service import EVENT_HANDLERS
from photobooking.services.stripe_client import construct_webhook_event

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/webhooks", tags=["webhooks"])


@router.post("/stripe")
async def stripe_webhook(request: Request) -> dict[str, str]:
    """Receive and process Stripe webhook events."""
    # Signature verification needs the raw bytes
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature", "")

    try:
        event = construct_webhook_event(payload, sig_header)
    except stripe.SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid signature",
        ) from e
    except ValueError as e:
        logger.warning("Invalid webhook payload")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        ) from e

    handler = EVENT_HANDLERS.get(event.type)
    if handler is None:
        logger.debug("Unhandled webhook event type: %s", event.type)
        return {"status": "ignored"}

    logger.info("Processing webhook event: %s (id=%s)", event.type, event.id)

    # Webhooks carry no user, so they get their own unit of work
    async with async_session_factory() as db:
        try:
            await handler(db, event)
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.exception("Error processing webhook event %s", event.id)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Webhook processing failed",
            ) from e

    return {"status": "processed"}
