"""Pydantic v2 schemas for checkout and payment verification."""

import uuid

from pydantic import BaseModel


class CheckoutSessionRequest(BaseModel):
    booking_id: uuid.UUID


class CheckoutSessionResponse(BaseModel):
    """Stripe Checkout session created for a payable booking."""

    session_id: str
    url: str


class PaymentVerificationResponse(BaseModel):
    booking_id: uuid.UUID
    payment_status: str
    status: str
    needs_confirmation: bool
