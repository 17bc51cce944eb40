"""Pydantic v2 request/response schemas for booking endpoints.

Bookings are stored flat; responses regroup the columns into the nested
``pricing``, ``participants``, ``location``, ``photographer`` and
``cancellation`` blocks clients expect.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator

from photobooking.booking.timeslots import normalize_time
from photobooking.models.booking import Booking

_LOCATION = "^(studio|client-home|outdoor|event-venue|other)$"
_STATUS = "^(pending|confirmed|in-progress|completed|cancelled|no-show)$"


def _strip_time_of_day(value: object) -> object:
    """Accept an ISO date-time where a date is expected and keep only the date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


BookingDate = Annotated[date, BeforeValidator(_strip_time_of_day)]


def _normalize_optional_time(value: str | None) -> str | None:
    return None if value is None else normalize_time(value)


# ---------------------------------------------------------------------------
# Nested request blocks
# ---------------------------------------------------------------------------


class ParticipantDetail(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    age: int | None = Field(None, ge=0)
    role: str = Field("", max_length=100)


class ParticipantsIn(BaseModel):
    count: int = Field(1, ge=1)
    details: list[ParticipantDetail] = Field(default_factory=list)


class AddressIn(BaseModel):
    street: str | None = Field(None, max_length=200)
    city: str | None = Field(None, max_length=100)
    postal_code: str | None = Field(None, max_length=20)
    country: str = Field("Morocco", max_length=100)


class LocationIn(BaseModel):
    type: str = Field("studio", pattern=_LOCATION)
    address: AddressIn | None = None
    notes: str | None = Field(None, max_length=500)


class PhotographerIn(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for creating a new booking.

    Times accept ``H:MM`` or ``HH:MM`` and are normalized to ``HH:MM``.
    Ordering and future-date rules are enforced by the booking service so
    they surface as ``invalid_interval`` errors.
    """

    service_id: uuid.UUID
    booking_date: BookingDate
    start_time: str
    end_time: str
    participants: ParticipantsIn = Field(default_factory=ParticipantsIn)
    location: LocationIn = Field(default_factory=LocationIn)
    special_requests: str | None = Field(None, max_length=1000)
    client_notes: str | None = Field(None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, value: str) -> str:
        return normalize_time(value)


# Fields that only an admin may send in a ``BookingUpdate``.
ADMIN_ONLY_FIELDS = frozenset({"admin_notes", "photographer", "status", "status_reason"})


class BookingUpdate(BaseModel):
    """Partial update of a booking. Only fields present in the request are applied.

    Owners may change the schedule, participants, location and their own
    notes while the booking is editable; ``ADMIN_ONLY_FIELDS`` are accepted
    from admins only.
    """

    booking_date: BookingDate | None = None
    start_time: str | None = None
    end_time: str | None = None
    participants: ParticipantsIn | None = None
    location: LocationIn | None = None
    special_requests: str | None = Field(None, max_length=1000)
    client_notes: str | None = Field(None, max_length=500)

    admin_notes: str | None = Field(None, max_length=1000)
    photographer: PhotographerIn | None = None
    status: str | None = Field(None, pattern=_STATUS)
    status_reason: str | None = Field(None, max_length=500)

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, value: str | None) -> str | None:
        return _normalize_optional_time(value)


class AcceptRequest(BaseModel):
    admin_notes: str | None = Field(None, max_length=1000)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class StatusNoteRequest(BaseModel):
    """Optional note recorded with start/complete/no-show transitions."""

    reason: str | None = Field(None, max_length=500)


class AvailabilityCheckRequest(BaseModel):
    booking_date: BookingDate
    start_time: str
    end_time: str
    exclude_booking_id: uuid.UUID | None = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize_times(cls, value: str) -> str:
        return normalize_time(value)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PricingResponse(BaseModel):
    base_price: Decimal
    additional_fees: Decimal
    discount: Decimal
    total_amount: Decimal
    currency: str
    payment_status: str


class ParticipantsResponse(BaseModel):
    count: int
    details: list[dict] = Field(default_factory=list)


class LocationResponse(BaseModel):
    type: str
    address: dict | None = None
    notes: str | None = None


class PhotographerResponse(BaseModel):
    name: str
    email: str | None = None
    phone: str | None = None
    assigned_at: datetime | None = None


class CancellationResponse(BaseModel):
    reason: str | None = None
    cancelled_by: uuid.UUID | None = None
    cancelled_at: datetime | None = None
    refund_status: str | None = None


class StatusEventResponse(BaseModel):
    status: str
    changed_by: uuid.UUID
    changed_at: datetime
    reason: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ServiceSummary(BaseModel):
    id: uuid.UUID
    name: str
    price: Decimal
    duration: int
    category: str
    service_type: str

    model_config = ConfigDict(from_attributes=True)


class BookingResponse(BaseModel):
    """Full booking representation including derived flags and history."""

    id: uuid.UUID
    client_id: uuid.UUID
    service_id: uuid.UUID
    service: ServiceSummary | None = None
    booking_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    status: str
    confirmed_at: datetime | None = None
    pricing: PricingResponse
    participants: ParticipantsResponse
    location: LocationResponse
    photographer: PhotographerResponse
    special_requests: str | None = None
    client_notes: str | None = None
    admin_notes: str | None = None
    cancellation: CancellationResponse | None = None
    status_history: list[StatusEventResponse] = Field(default_factory=list)
    is_editable: bool
    is_cancellable: bool
    is_payable: bool
    needs_confirmation: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingResponse":
        cancellation = None
        if booking.cancelled_at is not None:
            cancellation = CancellationResponse(
                reason=booking.cancellation_reason,
                cancelled_by=booking.cancelled_by,
                cancelled_at=booking.cancelled_at,
                refund_status=booking.refund_status,
            )
        return cls(
            id=booking.id,
            client_id=booking.client_id,
            service_id=booking.service_id,
            service=ServiceSummary.model_validate(booking.service) if booking.service is not None else None,
            booking_date=booking.booking_date,
            start_time=booking.start_time,
            end_time=booking.end_time,
            duration_minutes=booking.duration_minutes,
            status=booking.status,
            confirmed_at=booking.confirmed_at,
            pricing=PricingResponse(
                base_price=booking.base_price,
                additional_fees=booking.additional_fees,
                discount=booking.discount,
                total_amount=booking.total_amount,
                currency=booking.currency,
                payment_status=booking.payment_status,
            ),
            participants=ParticipantsResponse(
                count=booking.participants_count,
                details=booking.participant_details or [],
            ),
            location=LocationResponse(
                type=booking.location_type,
                address=booking.location_address or None,
                notes=booking.location_notes,
            ),
            photographer=PhotographerResponse(
                name=booking.photographer_name,
                email=booking.photographer_email,
                phone=booking.photographer_phone,
                assigned_at=booking.photographer_assigned_at,
            ),
            special_requests=booking.special_requests,
            client_notes=booking.client_notes,
            admin_notes=booking.admin_notes,
            cancellation=cancellation,
            status_history=[StatusEventResponse.model_validate(event) for event in booking.status_history],
            is_editable=booking.is_editable,
            is_cancellable=booking.is_cancellable,
            is_payable=booking.is_payable,
            needs_confirmation=booking.needs_confirmation,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingResponse]
    total: int
    skip: int
    limit: int


class AvailabilityCheckResponse(BaseModel):
    available: bool
    conflicts: int


class SlotResponse(BaseModel):
    start_time: str
    end_time: str
    duration: int


class AvailableSlotsResponse(BaseModel):
    """Free slots of one duration on one date, earliest first."""

    booking_date: date
    duration: int
    slots: list[SlotResponse]


class TopServiceResponse(BaseModel):
    service_id: uuid.UUID
    name: str | None = None
    count: int


class TopPhotographerResponse(BaseModel):
    name: str
    count: int


class BookingStatsResponse(BaseModel):
    """Aggregate booking statistics for the admin dashboard."""

    total: int
    per_status: dict[str, int]
    total_revenue: Decimal
    average_booking_value: Decimal
    total_discounts: Decimal
    top_services: list[TopServiceResponse]
    top_photographers: list[TopPhotographerResponse]


class ReminderRunResponse(BaseModel):
    booking_date: date
    reminded: int
