"""Bookings API router.

Clients see and change only their own bookings; admins see every booking
and drive the confirm / start / complete / no-show transitions. Engine
errors (``BookingError``) propagate to the handler registered in ``main``.
"""

import uuid
from datetime import date, timedelta

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.api.deps import get_current_actor, get_db, get_email_sender, require_admin
from photobooking.booking.lifecycle import Actor
from photobooking.models.user import User
from photobooking.schemas.auth import MessageResponse
from photobooking.schemas.booking import (
    AcceptRequest,
    AvailabilityCheckRequest,
    AvailabilityCheckResponse,
    AvailableSlotsResponse,
    BookingCreate,
    BookingListResponse,
    BookingResponse,
    BookingStatsResponse,
    BookingUpdate,
    CancelRequest,
    RejectRequest,
    ReminderRunResponse,
    SlotResponse,
    StatusNoteRequest,
    TopPhotographerResponse,
    TopServiceResponse,
)
from photobooking.services import booking_service
from photobooking.services.email import EmailSender

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])

_STATUS_PATTERN = "^(pending|confirmed|in-progress|completed|cancelled|no-show)$"


# ---------------------------------------------------------------------------
# Create / list
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BookingResponse:
    """Reserve a slot for the current user. The booking starts as ``pending``."""
    booking = await booking_service.create_booking(db, actor, body)
    return BookingResponse.from_booking(booking)


@router.get("/me", response_model=BookingListResponse, summary="List my bookings")
async def list_my_bookings(
    status_filter: str | None = Query(None, alias="status", pattern=_STATUS_PATTERN),
    sort_by: str = Query("booking_date", pattern="^(booking_date|created_at)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BookingListResponse:
    items, total = await booking_service.list_client_bookings(
        db,
        actor.id,
        status=status_filter,
        sort_by=sort_by,
        order=order,
        skip=skip,
        limit=limit,
    )
    return BookingListResponse(
        items=[BookingResponse.from_booking(b) for b in items],
        total=total,
        skip=skip,
        limit=limit,
    )


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


@router.get(
    "/available-slots",
    response_model=AvailableSlotsResponse,
    summary="List free slots on a date",
)
async def get_available_slots(
    booking_date: date = Query(..., alias="date"),
    duration: int | None = Query(None, ge=1, le=24 * 60, description="Slot length in minutes"),
    service_id: uuid.UUID | None = Query(None, description="Use this service's duration"),
    db: AsyncSession = Depends(get_db),
) -> AvailableSlotsResponse:
    """Free slots within business hours, earliest first. Public."""
    duration, slots = await booking_service.available_slots(db, booking_date, duration, service_id)
    return AvailableSlotsResponse(
        booking_date=booking_date,
        duration=duration,
        slots=[SlotResponse(start_time=s.start_time, end_time=s.end_time, duration=s.duration) for s in slots],
    )


@router.post(
    "/check-availability",
    response_model=AvailabilityCheckResponse,
    summary="Check whether an interval is free",
)
async def check_availability(
    body: AvailabilityCheckRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> AvailabilityCheckResponse:
    available, conflicts = await booking_service.check_availability(
        db,
        body.booking_date,
        body.start_time,
        body.end_time,
        body.exclude_booking_id,
    )
    return AvailabilityCheckResponse(available=available, conflicts=conflicts)


# ---------------------------------------------------------------------------
# Admin views
# ---------------------------------------------------------------------------


@router.get("/admin/all", response_model=BookingListResponse, summary="List all bookings (admin)")
async def list_all_bookings(
    status_filter: str | None = Query(None, alias="status", pattern=_STATUS_PATTERN),
    photographer: str | None = Query(None, max_length=100, description="Photographer name contains"),
    booking_date: date | None = Query(None, alias="date"),
    client_id: uuid.UUID | None = Query(None),
    service_id: uuid.UUID | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> BookingListResponse:
    items, total = await booking_service.list_all_bookings(
        db,
        status=status_filter,
        photographer=photographer,
        booking_date=booking_date,
        client_id=client_id,
        service_id=service_id,
        skip=skip,
        limit=limit,
    )
    return BookingListResponse(
        items=[BookingResponse.from_booking(b) for b in items],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/admin/stats", response_model=BookingStatsResponse, summary="Booking statistics (admin)")
async def get_booking_stats(
    start_date: date | None = Query(None, description="Created on or after this date"),
    end_date: date | None = Query(None, description="Created on or before this date"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> BookingStatsResponse:
    stats = await booking_service.booking_stats(db, start_date, end_date)
    return BookingStatsResponse(
        total=stats.total,
        per_status=stats.per_status,
        total_revenue=stats.total_revenue,
        average_booking_value=stats.average_booking_value,
        total_discounts=stats.total_discounts,
        top_services=[
            TopServiceResponse(service_id=service_id, name=name, count=count)
            for service_id, name, count in stats.top_services
        ],
        top_photographers=[TopPhotographerResponse(name=name, count=count) for name, count in stats.top_photographers],
    )


@router.post("/admin/reminders", response_model=ReminderRunResponse, summary="Send session reminders (admin)")
async def send_reminders(
    booking_date: date | None = Query(None, description="Sessions on this date; defaults to tomorrow"),
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    email_sender: EmailSender | None = Depends(get_email_sender),
) -> ReminderRunResponse:
    """Notify and email clients whose confirmed session falls on ``booking_date``."""
    day = booking_date or date.today() + timedelta(days=1)
    reminded = await booking_service.send_booking_reminders(db, day, email_sender)
    return ReminderRunResponse(booking_date=day, reminded=reminded)


# ---------------------------------------------------------------------------
# Single booking
# ---------------------------------------------------------------------------


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get booking detail")
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BookingResponse:
    booking = await booking_service.get_booking_for_actor(db, booking_id, actor)
    return BookingResponse.from_booking(booking)


@router.put("/{booking_id}", response_model=BookingResponse, summary="Update a booking")
async def update_booking(
    booking_id: uuid.UUID,
    body: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    email_sender: EmailSender | None = Depends(get_email_sender),
) -> BookingResponse:
    """Partially update a booking. Only explicitly set fields are changed."""
    booking = await booking_service.update_booking(db, actor, booking_id, body, email_sender)
    return BookingResponse.from_booking(booking)


@router.delete("/{booking_id}", response_model=MessageResponse, summary="Delete a booking")
async def delete_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> MessageResponse:
    """Permanently delete a booking and its notifications. Not a cancellation."""
    await booking_service.delete_booking(db, booking_id, actor)
    return MessageResponse(message="Booking deleted")


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


@router.patch("/{booking_id}/accept", response_model=BookingResponse, summary="Confirm a pending booking (admin)")
async def accept_booking(
    booking_id: uuid.UUID,
    body: AcceptRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    email_sender: EmailSender | None = Depends(get_email_sender),
) -> BookingResponse:
    booking = await booking_service.transition_booking(
        db,
        booking_id,
        actor,
        "accept",
        email_sender=email_sender,
        admin_notes=body.admin_notes if body is not None else None,
    )
    return BookingResponse.from_booking(booking)


@router.patch("/{booking_id}/reject", response_model=BookingResponse, summary="Reject a booking (admin)")
async def reject_booking(
    booking_id: uuid.UUID,
    body: RejectRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    email_sender: EmailSender | None = Depends(get_email_sender),
) -> BookingResponse:
    booking = await booking_service.transition_booking(
        db,
        booking_id,
        actor,
        "reject",
        reason=body.reason,
        email_sender=email_sender,
    )
    return BookingResponse.from_booking(booking)


@router.patch("/{booking_id}/cancel", response_model=BookingResponse, summary="Cancel a booking")
async def cancel_booking(
    booking_id: uuid.UUID,
    body: CancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
    email_sender: EmailSender | None = Depends(get_email_sender),
) -> BookingResponse:
    """Cancel an active booking. Clients must cancel more than the notice window ahead."""
    booking = await booking_service.cancel_booking(
        db,
        booking_id,
        actor,
        reason=body.reason if body is not None else None,
        email_sender=email_sender,
    )
    return BookingResponse.from_booking(booking)


async def _admin_transition(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor: Actor,
    name: str,
    body: StatusNoteRequest | None,
) -> BookingResponse:
    booking = await booking_service.transition_booking(
        db,
        booking_id,
        actor,
        name,
        reason=body.reason if body is not None else None,
    )
    return BookingResponse.from_booking(booking)


@router.patch("/{booking_id}/start", response_model=BookingResponse, summary="Start the session (admin)")
async def start_session(
    booking_id: uuid.UUID,
    body: StatusNoteRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BookingResponse:
    return await _admin_transition(db, booking_id, actor, "start_session", body)


@router.patch("/{booking_id}/complete", response_model=BookingResponse, summary="Complete the session (admin)")
async def complete_session(
    booking_id: uuid.UUID,
    body: StatusNoteRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BookingResponse:
    return await _admin_transition(db, booking_id, actor, "complete", body)


@router.patch("/{booking_id}/no-show", response_model=BookingResponse, summary="Mark as no-show (admin)")
async def mark_no_show(
    booking_id: uuid.UUID,
    body: StatusNoteRequest | None = None,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
) -> BookingResponse:
    return await _admin_transition(db, booking_id, actor, "mark_no_show", body)
