"""Booking operations: creation, updates, status changes, payment, reminders and statistics.

Every function takes the request's ``AsyncSession`` and only flushes; the
``get_db`` dependency commits once the whole request succeeds, so a status
change, its history event and its notification land together or not at all.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from photobooking.booking import lifecycle
from photobooking.booking.errors import CapacityExceeded, InvalidInterval, InvalidTransition, NotFound, Unauthorized
from photobooking.booking.lifecycle import Actor, TransitionResult
from photobooking.booking.stats import BookingFact, BookingStats, compute_stats
from photobooking.booking.timeslots import TimeSlot, to_minutes
from photobooking.config import settings
from photobooking.database import utcnow
from photobooking.models.booking import DEFAULT_PHOTOGRAPHER, Booking, BookingStatusEvent
from photobooking.models.service import Service
from photobooking.models.user import User
from photobooking.schemas.booking import ADMIN_ONLY_FIELDS, BookingCreate, BookingUpdate
from photobooking.services import availability
from photobooking.services.email import EmailSender, queue_booking_email
from photobooking.services.notification_service import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_REMINDER,
    BOOKING_UPDATED,
    PAYMENT_RECEIVED,
    delete_booking_notifications,
    notify_booking,
)

logger = logging.getLogger(__name__)

_EMAIL_TEMPLATES = {
    lifecycle.CONFIRMED: "booking_confirmation",
    lifecycle.CANCELLED: "booking_cancellation",
}
_NOTIFICATION_KINDS = {
    lifecycle.CONFIRMED: BOOKING_CONFIRMED,
    lifecycle.CANCELLED: BOOKING_CANCELLED,
}
_SCHEDULE_FIELDS = frozenset({"booking_date", "start_time", "end_time"})

CLIENT_CANCEL_REASON = "Cancellation by client"
ADMIN_STATUS_REASON = "Changed by administrator"


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_active_service(db: AsyncSession, service_id: uuid.UUID) -> Service:
    service = await db.get(Service, service_id)
    if service is None or not service.is_active:
        raise NotFound("Service not found")
    return service


async def load_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    """Fetch a booking with its service and a fresh copy of its history."""
    result = await db.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .options(selectinload(Booking.service), selectinload(Booking.status_history))
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found")
    return booking


async def get_booking_for_actor(db: AsyncSession, booking_id: uuid.UUID, actor: Actor) -> Booking:
    """Fetch a booking the actor owns; admins may fetch any booking."""
    booking = await load_booking(db, booking_id)
    if not actor.is_admin and booking.client_id != actor.id:
        raise Unauthorized("You do not have access to this booking")
    return booking


async def get_booking_by_checkout_session(db: AsyncSession, session_id: str) -> Booking | None:
    result = await db.execute(select(Booking.id).where(Booking.stripe_session_id == session_id))
    booking_id = result.scalar_one_or_none()
    return None if booking_id is None else await load_booking(db, booking_id)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_interval(booking_date: date, start_time: str, end_time: str, today: date | None = None) -> None:
    """Reject an empty or inverted interval, and a date that is not in the future.

    Pass ``today=None`` to skip the future-date rule.
    """
    if to_minutes(end_time) <= to_minutes(start_time):
        raise InvalidInterval("The end time must be after the start time")
    if today is not None and booking_date <= today:
        raise InvalidInterval("The booking date must be in the future")


def check_capacity(service: Service, participants: int) -> None:
    if participants > service.max_participants:
        raise CapacityExceeded(
            f"This service accepts at most {service.max_participants} participants ({participants} requested)"
        )


def compute_total(
    base_price: Decimal,
    participants: int,
    additional_fees: Decimal = Decimal("0"),
    discount: Decimal = Decimal("0"),
) -> Decimal:
    return base_price * participants + additional_fees - discount


# ---------------------------------------------------------------------------
# Create / update / delete
# ---------------------------------------------------------------------------


async def create_booking(db: AsyncSession, actor: Actor, data: BookingCreate) -> Booking:
    """Create a pending booking for ``actor`` after validating and reserving its slot.

    Raises:
        NotFound: The service does not exist or is inactive.
        InvalidInterval: End not after start, or the date is not in the future.
        CapacityExceeded: More participants than the service allows.
        SlotUnavailable: The interval overlaps an active booking, or a
            concurrent booking on the same date won the race.
    """
    service = await get_active_service(db, data.service_id)
    validate_interval(data.booking_date, data.start_time, data.end_time, today=date.today())
    check_capacity(service, data.participants.count)

    await availability.reserve_interval(db, data.booking_date, data.start_time, data.end_time)

    address = data.location.address
    booking = Booking(
        client_id=actor.id,
        service_id=service.id,
        booking_date=data.booking_date,
        start_time=data.start_time,
        end_time=data.end_time,
        status=lifecycle.PENDING,
        base_price=service.price,
        additional_fees=Decimal("0"),
        discount=Decimal("0"),
        total_amount=compute_total(service.price, data.participants.count),
        currency=settings.default_currency,
        payment_status=lifecycle.PAYMENT_PENDING,
        participants_count=data.participants.count,
        participant_details=[detail.model_dump() for detail in data.participants.details],
        location_type=data.location.type,
        location_address=address.model_dump() if address is not None else {},
        location_notes=data.location.notes,
        photographer_name=DEFAULT_PHOTOGRAPHER,
        special_requests=data.special_requests,
        client_notes=data.client_notes,
        created_by=actor.id,
        last_modified_by=actor.id,
    )
    db.add(booking)
    await db.flush()

    logger.info(
        "Booking %s created by %s: %s %s-%s (%s)",
        booking.id,
        actor.id,
        booking.booking_date,
        booking.start_time,
        booking.end_time,
        service.name,
    )
    return await load_booking(db, booking.id)


async def update_booking(
    db: AsyncSession,
    actor: Actor,
    booking_id: uuid.UUID,
    data: BookingUpdate,
    email_sender: EmailSender | None = None,
) -> Booking:
    """Apply the fields present in ``data`` to a booking.

    Clients may only edit their own bookings while they are editable, and
    never the admin-only fields. A changed schedule is re-validated and
    re-checked for conflicts against every booking but this one; an admin
    ``status`` goes through the state machine.
    """
    changes = data.model_dump(exclude_unset=True)
    booking = await get_booking_for_actor(db, booking_id, actor)

    if not actor.is_admin:
        forbidden = ADMIN_ONLY_FIELDS & changes.keys()
        if forbidden:
            raise Unauthorized(f"Only administrators can change: {', '.join(sorted(forbidden))}")
        if not booking.is_editable:
            raise InvalidTransition(f"A booking with status '{booking.status}' can no longer be modified")

    if _SCHEDULE_FIELDS & changes.keys():
        date_changed = data.booking_date is not None
        new_date = data.booking_date if date_changed else booking.booking_date
        new_start = data.start_time or booking.start_time
        new_end = data.end_time or booking.end_time
        validate_interval(
            new_date,
            new_start,
            new_end,
            today=date.today() if date_changed else None,
        )
        if booking.status in lifecycle.ACTIVE_STATUSES:
            await availability.reserve_interval(db, new_date, new_start, new_end, exclude_booking_id=booking.id)
        booking.booking_date = new_date
        booking.start_time = new_start
        booking.end_time = new_end

    if data.participants is not None:
        check_capacity(booking.service, data.participants.count)
        booking.participants_count = data.participants.count
        booking.participant_details = [detail.model_dump() for detail in data.participants.details]
        booking.total_amount = compute_total(
            booking.base_price,
            booking.participants_count,
            booking.additional_fees,
            booking.discount,
        )

    if data.location is not None:
        booking.location_type = data.location.type
        booking.location_address = data.location.address.model_dump() if data.location.address else {}
        booking.location_notes = data.location.notes

    for field_name in ("special_requests", "client_notes", "admin_notes"):
        if field_name in changes:
            setattr(booking, field_name, changes[field_name])

    if data.photographer is not None:
        booking.photographer_name = data.photographer.name
        booking.photographer_email = data.photographer.email
        booking.photographer_phone = data.photographer.phone
        booking.photographer_assigned_at = utcnow()

    booking.last_modified_by = actor.id
    await db.flush()

    if data.status is not None and data.status != booking.status:
        await _transition(
            db,
            booking,
            actor,
            lifecycle.transition_for_status(data.status),
            reason=data.status_reason or ADMIN_STATUS_REASON,
            email_sender=email_sender,
        )
    elif actor.is_admin and actor.id != booking.client_id and changes.keys() - {"admin_notes"}:
        await notify_booking(db, booking, BOOKING_UPDATED)

    logger.info("Booking %s updated by %s (%s)", booking.id, actor.id, ", ".join(sorted(changes)) or "no fields")
    return await load_booking(db, booking.id)


async def delete_booking(db: AsyncSession, booking_id: uuid.UUID, actor: Actor) -> None:
    """Permanently remove a booking, its history and its notifications."""
    booking = await get_booking_for_actor(db, booking_id, actor)
    removed = await delete_booking_notifications(db, booking.id)
    await db.delete(booking)
    await db.flush()
    logger.info("Booking %s deleted by %s (%d notification(s) removed)", booking_id, actor.id, removed)


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


async def _transition(
    db: AsyncSession,
    booking: Booking,
    actor: Actor,
    name: str,
    reason: str | None = None,
    email_sender: EmailSender | None = None,
) -> TransitionResult:
    result = lifecycle.apply_transition(
        booking.snapshot(),
        name,
        actor,
        now=datetime.now(),
        reason=reason,
        notice_hours=settings.cancellation_notice_hours,
        recorded_at=utcnow(),
    )

    booking.status = result.status
    booking.last_modified_by = actor.id
    if result.confirmed_at is not None:
        booking.confirmed_at = result.confirmed_at
    if result.cancellation is not None:
        booking.cancellation_reason = result.cancellation.reason
        booking.cancelled_by = result.cancellation.cancelled_by
        booking.cancelled_at = result.cancellation.cancelled_at
        booking.refund_status = result.cancellation.refund_status

    db.add(
        BookingStatusEvent(
            booking_id=booking.id,
            status=result.event.status,
            changed_by=result.event.changed_by,
            changed_at=result.event.changed_at,
            reason=result.event.reason,
        )
    )
    await db.flush()
    logger.info(
        "Booking %s %s -> %s by %s (%s)",
        booking.id,
        result.previous_status,
        result.status,
        actor.id,
        result.event.reason,
    )

    if result.notify:
        await notify_booking(db, booking, _NOTIFICATION_KINDS[result.status], reason=result.event.reason)
        client = await db.get(User, booking.client_id)
        if client is not None:
            queue_booking_email(
                db,
                email_sender,
                _EMAIL_TEMPLATES[result.status],
                booking,
                client,
                reason=result.event.reason,
            )
    return result


async def transition_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor: Actor,
    name: str,
    reason: str | None = None,
    email_sender: EmailSender | None = None,
    admin_notes: str | None = None,
) -> Booking:
    """Run the named state-machine transition on a booking and persist it.

    Raises:
        NotFound: No such booking.
        Unauthorized, InvalidTransition, ValidationFailure: Raised by
            ``lifecycle.apply_transition`` guards.
    """
    booking = await load_booking(db, booking_id)
    await _transition(db, booking, actor, name, reason=reason, email_sender=email_sender)
    if admin_notes is not None:
        booking.admin_notes = admin_notes
        await db.flush()
    return await load_booking(db, booking.id)


async def cancel_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    actor: Actor,
    reason: str | None = None,
    email_sender: EmailSender | None = None,
) -> Booking:
    """Self-service or admin cancellation; a blank reason gets a default."""
    return await transition_booking(
        db,
        booking_id,
        actor,
        "cancel",
        reason=(reason or "").strip() or CLIENT_CANCEL_REASON,
        email_sender=email_sender,
    )


# ---------------------------------------------------------------------------
# Payment
# ---------------------------------------------------------------------------


async def record_payment(
    db: AsyncSession,
    booking: Booking,
    paid: bool,
    reference: str | None = None,
) -> bool:
    """Record an external payment confirmation for ``booking``.

    Idempotent: only the first ``paid`` signal changes the booking and
    notifies the client. The booking status is never touched; a paid
    pending booking still needs an admin to accept it.

    Returns True when the payment was recorded by this call.
    """
    if not lifecycle.should_record_payment(booking.payment_status, paid):
        logger.info("Payment signal for booking %s ignored (paid=%s, status=%s)", booking.id, paid, booking.payment_status)
        return False

    booking.payment_status = lifecycle.PAID
    if reference:
        booking.stripe_payment_intent_id = reference
    await db.flush()
    await notify_booking(db, booking, PAYMENT_RECEIVED)
    logger.info("Payment recorded for booking %s (reference %s)", booking.id, reference)
    return True


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------


async def send_booking_reminders(
    db: AsyncSession,
    day: date,
    email_sender: EmailSender | None = None,
) -> int:
    """Remind every client with a confirmed session on ``day``.

    Each booking gets one ``booking_reminder`` notification and one reminder
    email; bookings already reminded are skipped, so a rerun for the same
    day sends nothing new. Meant to be triggered once a day by an external
    scheduler for the next day's sessions.

    Returns the number of bookings reminded.
    """
    result = await db.execute(
        select(Booking, User)
        .join(User, User.id == Booking.client_id)
        .where(
            Booking.booking_date == day,
            Booking.status == lifecycle.CONFIRMED,
            Booking.reminder_sent_at.is_(None),
        )
        .options(selectinload(Booking.service))
        .order_by(Booking.start_time)
    )
    rows = result.all()

    now = utcnow()
    for booking, client in rows:
        booking.reminder_sent_at = now
        await notify_booking(db, booking, BOOKING_REMINDER)
        queue_booking_email(db, email_sender, "booking_reminder", booking, client)

    await db.flush()
    logger.info("Queued %d reminder(s) for sessions on %s", len(rows), day)
    return len(rows)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def _page(
    db: AsyncSession,
    filters: list,
    order_by: list,
    skip: int,
    limit: int,
) -> tuple[list[Booking], int]:
    total_result = await db.execute(select(func.count()).select_from(Booking).where(*filters))
    total = total_result.scalar_one()

    result = await db.execute(select(Booking).where(*filters).order_by(*order_by).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def list_client_bookings(
    db: AsyncSession,
    client_id: uuid.UUID,
    status: str | None = None,
    sort_by: str = "booking_date",
    order: str = "desc",
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    filters = [Booking.client_id == client_id]
    if status is not None:
        filters.append(Booking.status == status)

    column = Booking.created_at if sort_by == "created_at" else Booking.booking_date
    ordering = [column.asc(), Booking.start_time.asc()] if order == "asc" else [column.desc(), Booking.start_time.desc()]
    return await _page(db, filters, ordering, skip, limit)


async def list_all_bookings(
    db: AsyncSession,
    status: str | None = None,
    photographer: str | None = None,
    booking_date: date | None = None,
    client_id: uuid.UUID | None = None,
    service_id: uuid.UUID | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    """Admin listing across every client, newest first."""
    filters: list = []
    if status is not None:
        filters.append(Booking.status == status)
    if photographer:
        filters.append(Booking.photographer_name.ilike(f"%{photographer}%"))
    if booking_date is not None:
        filters.extend(
            [Booking.booking_date >= booking_date, Booking.booking_date < booking_date + timedelta(days=1)]
        )
    if client_id is not None:
        filters.append(Booking.client_id == client_id)
    if service_id is not None:
        filters.append(Booking.service_id == service_id)
    return await _page(db, filters, [Booking.created_at.desc()], skip, limit)


async def check_availability(
    db: AsyncSession,
    booking_date: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: uuid.UUID | None = None,
) -> tuple[bool, int]:
    """Return ``(available, conflicting_booking_count)`` for an interval."""
    validate_interval(booking_date, start_time, end_time)
    conflicts = await availability.count_conflicts(db, booking_date, start_time, end_time, exclude_booking_id)
    return conflicts == 0, conflicts


async def available_slots(
    db: AsyncSession,
    booking_date: date,
    duration: int | None = None,
    service_id: uuid.UUID | None = None,
) -> tuple[int, list[TimeSlot]]:
    """Free slots on a date; duration comes from the argument, the service, or the default."""
    if duration is None:
        if service_id is not None:
            duration = (await get_active_service(db, service_id)).duration
        else:
            duration = settings.default_slot_duration_minutes
    slots = await availability.list_available_slots(db, booking_date, duration)
    logger.info("Found %d available %d-minute slot(s) on %s", len(slots), duration, booking_date)
    return duration, slots


async def booking_stats(
    db: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
) -> BookingStats:
    """Statistics over bookings created between ``start_date`` and ``end_date``, both inclusive."""
    query = (
        select(
            Booking.status,
            Booking.total_amount,
            Booking.discount,
            Booking.service_id,
            Service.name,
            Booking.photographer_name,
        )
        .join(Service, Service.id == Booking.service_id)
        .order_by(Booking.created_at, Booking.id)
    )
    if start_date is not None:
        query = query.where(Booking.created_at >= datetime.combine(start_date, time.min))
    if end_date is not None:
        query = query.where(Booking.created_at < datetime.combine(end_date + timedelta(days=1), time.min))

    result = await db.execute(query)
    facts = [BookingFact(*row) for row in result.all()]
    return compute_stats(facts, top_n=settings.stats_top_n)
