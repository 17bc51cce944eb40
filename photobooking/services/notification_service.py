"""Notification collaborator: durable, user-visible messages about bookings."""

import logging
import uuid
from datetime import timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.booking.errors import NotFound, ValidationFailure
from photobooking.config import settings
from photobooking.database import utcnow
from photobooking.models.booking import Booking
from photobooking.models.notification import Notification

logger = logging.getLogger(__name__)

BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_REMINDER = "booking_reminder"
BOOKING_UPDATED = "booking_updated"
ADMIN_MESSAGE = "admin_message"
PAYMENT_RECEIVED = "payment_received"
SYSTEM_NOTIFICATION = "system_notification"

NOTIFICATION_KINDS = frozenset(
    {
        BOOKING_CONFIRMED,
        BOOKING_CANCELLED,
        BOOKING_REMINDER,
        BOOKING_UPDATED,
        ADMIN_MESSAGE,
        PAYMENT_RECEIVED,
        SYSTEM_NOTIFICATION,
    }
)

BOOKING_TEMPLATES = {
    BOOKING_CONFIRMED: (
        "Booking confirmed",
        "Your booking for {service_name} on {booking_date} at {start_time} has been confirmed!",
    ),
    BOOKING_CANCELLED: (
        "Booking cancelled",
        "Your booking for {service_name} on {booking_date} has been cancelled. Reason: {reason}",
    ),
    BOOKING_UPDATED: (
        "Booking updated",
        "Your booking for {service_name} on {booking_date} has been updated.",
    ),
    BOOKING_REMINDER: (
        "Upcoming session",
        "Reminder: your {service_name} session is on {booking_date} at {start_time}.",
    ),
    PAYMENT_RECEIVED: (
        "Payment received",
        "We received your payment of {total_amount} {currency} for {service_name} on {booking_date}.",
    ),
}


async def create_notification(
    db: AsyncSession,
    user_id: uuid.UUID,
    kind: str,
    title: str,
    message: str,
    booking_id: uuid.UUID | None = None,
    data: dict | None = None,
) -> Notification:
    """Persist a notification that expires after ``notification_ttl_days``."""
    if kind not in NOTIFICATION_KINDS:
        raise ValidationFailure(f"Unknown notification kind '{kind}'")

    now = utcnow()
    notification = Notification(
        user_id=user_id,
        booking_id=booking_id,
        kind=kind,
        title=title[:200],
        message=message[:1000],
        data=data or {},
        created_at=now,
        expires_at=now + timedelta(days=settings.notification_ttl_days),
    )
    db.add(notification)
    await db.flush()
    logger.info("Created %s notification for user %s", kind, user_id)
    return notification


async def notify_booking(
    db: AsyncSession,
    booking: Booking,
    kind: str,
    reason: str | None = None,
) -> Notification:
    """Create a templated notification about ``booking`` for its client."""
    title, template = BOOKING_TEMPLATES[kind]
    message = template.format(
        service_name=booking.service.name if booking.service is not None else "your session",
        booking_date=booking.booking_date.isoformat(),
        start_time=booking.start_time,
        total_amount=booking.total_amount,
        currency=booking.currency,
        reason=reason or "Not specified",
    )
    data = {"booking_id": str(booking.id), "service_id": str(booking.service_id)}
    if kind == PAYMENT_RECEIVED:
        data["amount"] = str(booking.total_amount)
    return await create_notification(
        db,
        user_id=booking.client_id,
        kind=kind,
        title=title,
        message=message,
        booking_id=booking.id,
        data=data,
    )


async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Notification], int, int]:
    """Return ``(page, total, unread)`` for a user's unexpired notifications, newest first."""
    visible = (Notification.user_id == user_id, Notification.expires_at > utcnow())
    filters = [*visible]
    if unread_only:
        filters.append(Notification.read.is_(False))

    total = (await db.execute(select(func.count()).select_from(Notification).where(*filters))).scalar_one()
    unread = (
        await db.execute(
            select(func.count()).select_from(Notification).where(*visible, Notification.read.is_(False))
        )
    ).scalar_one()

    result = await db.execute(
        select(Notification).where(*filters).order_by(Notification.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all()), total, unread


async def get_own_notification(db: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    result = await db.execute(
        select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotFound("Notification not found")
    return notification


async def mark_read(db: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
    notification = await get_own_notification(db, user_id, notification_id)
    if not notification.read:
        notification.read = True
        notification.read_at = utcnow()
        await db.flush()
    return notification


async def mark_all_read(db: AsyncSession, user_id: uuid.UUID) -> int:
    """Mark every unread notification of the user as read; return how many changed."""
    result = await db.execute(
        select(Notification).where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    unread = list(result.scalars().all())
    now = utcnow()
    for notification in unread:
        notification.read = True
        notification.read_at = now
    await db.flush()
    return len(unread)


async def delete_notification(db: AsyncSession, user_id: uuid.UUID, notification_id: uuid.UUID) -> None:
    notification = await get_own_notification(db, user_id, notification_id)
    await db.delete(notification)
    await db.flush()


async def delete_booking_notifications(db: AsyncSession, booking_id: uuid.UUID) -> int:
    """Remove every notification that refers to ``booking_id``."""
    result = await db.execute(
        delete(Notification)
        .where(Notification.booking_id == booking_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
