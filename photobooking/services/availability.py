"""Conflict detection, slot enumeration, and the per-date write guard.

The availability check alone is advisory: two requests can both see a free
slot. ``reserve_interval`` closes that gap with a compare-and-set on the
``schedule_days`` row of the date, so the second writer fails with
``SlotUnavailable`` instead of double-booking.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from datetime import date, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.booking.errors import SlotUnavailable, ValidationFailure
from photobooking.booking.lifecycle import ACTIVE_STATUSES
from photobooking.booking.timeslots import SlotGrid, TimeSlot
from photobooking.config import settings
from photobooking.models.booking import Booking
from photobooking.models.schedule import ScheduleDay

logger = logging.getLogger(__name__)


def _day_window(day: date) -> tuple:
    """Half-open ``[day, day + 1)`` filter on ``booking_date``."""
    return (
        Booking.booking_date >= day,
        Booking.booking_date < day + timedelta(days=1),
    )


def _conflict_filters(
    day: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: uuid.UUID | None,
) -> list:
    filters = [
        *_day_window(day),
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.start_time < end_time,
        Booking.end_time > start_time,
    ]
    if exclude_booking_id is not None:
        filters.append(Booking.id != exclude_booking_id)
    return filters


async def count_conflicts(
    db: AsyncSession,
    day: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: uuid.UUID | None = None,
) -> int:
    """Number of active bookings on ``day`` overlapping ``[start_time, end_time)``."""
    result = await db.execute(
        select(func.count())
        .select_from(Booking)
        .where(*_conflict_filters(day, start_time, end_time, exclude_booking_id))
    )
    return result.scalar_one()


async def is_slot_available(
    db: AsyncSession,
    day: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: uuid.UUID | None = None,
) -> bool:
    """Return True when no active booking on ``day`` overlaps the interval.

    Pass ``exclude_booking_id`` to re-check a booking against everything but
    itself while it is being edited.
    """
    conflicts = await count_conflicts(db, day, start_time, end_time, exclude_booking_id)
    if conflicts:
        logger.info("Slot %s %s-%s has %d conflicting booking(s)", day, start_time, end_time, conflicts)
    return conflicts == 0


async def occupied_slots(db: AsyncSession, day: date) -> list[TimeSlot]:
    """Intervals held by active bookings on ``day``."""
    result = await db.execute(
        select(Booking.start_time, Booking.end_time)
        .where(*_day_window(day), Booking.status.in_(ACTIVE_STATUSES))
        .order_by(Booking.start_time)
    )
    return [TimeSlot(start, end) for start, end in result.all()]


async def iter_available_slots(db: AsyncSession, day: date, duration: int) -> AsyncIterator[TimeSlot]:
    """Yield free slots of ``duration`` minutes on ``day``, earliest first.

    Candidates step through business hours every ``slot_step_minutes``; a
    candidate is yielded only when it overlaps no active booking, using the
    same overlap rule as ``is_slot_available``.
    """
    if duration <= 0:
        raise ValidationFailure("Duration must be a positive number of minutes")

    grid = SlotGrid(
        settings.business_opening_time,
        settings.business_closing_time,
        duration,
        settings.slot_step_minutes,
    )
    occupied = await occupied_slots(db, day)
    for candidate in grid:
        if not any(candidate.overlaps(taken) for taken in occupied):
            yield candidate


async def list_available_slots(db: AsyncSession, day: date, duration: int) -> list[TimeSlot]:
    return [slot async for slot in iter_available_slots(db, day, duration)]


# ---------------------------------------------------------------------------
# Per-date write guard
# ---------------------------------------------------------------------------


async def _ensure_schedule_day(db: AsyncSession, day: date) -> None:
    """Insert the ``schedule_days`` row for ``day`` unless it already exists."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = postgresql.insert(ScheduleDay).values(day=day, version=0)
    elif dialect == "sqlite":
        stmt = sqlite.insert(ScheduleDay).values(day=day, version=0)
    else:
        raise RuntimeError(f"Unsupported database dialect: {dialect}")
    await db.execute(stmt.on_conflict_do_nothing(index_elements=[ScheduleDay.day]))


async def read_day_version(db: AsyncSession, day: date) -> int:
    """Current write version of ``day``, creating the row on first use."""
    await _ensure_schedule_day(db, day)
    result = await db.execute(select(ScheduleDay.version).where(ScheduleDay.day == day))
    return result.scalar_one()


async def claim_day(db: AsyncSession, day: date, expected_version: int) -> None:
    """Bump the version of ``day`` if nobody else has since ``expected_version``.

    Raises:
        SlotUnavailable: Another writer placed or moved a booking on ``day``
            after ``expected_version`` was read.
    """
    result = await db.execute(
        update(ScheduleDay)
        .where(ScheduleDay.day == day, ScheduleDay.version == expected_version)
        .values(version=ScheduleDay.version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.warning("Concurrent write detected on %s (expected version %d)", day, expected_version)
        raise SlotUnavailable(
            "The schedule for this date changed while the booking was being saved. "
            "Please check availability and try again."
        )


async def reserve_interval(
    db: AsyncSession,
    day: date,
    start_time: str,
    end_time: str,
    exclude_booking_id: uuid.UUID | None = None,
) -> None:
    """Check availability and claim ``day`` before a booking write.

    The caller writes the booking row in the same transaction right after
    this returns.

    Raises:
        SlotUnavailable: The interval overlaps an active booking, or a
            concurrent writer claimed the date first.
    """
    version = await read_day_version(db, day)
    if not await is_slot_available(db, day, start_time, end_time, exclude_booking_id):
        logger.warning("Rejected booking %s %s-%s: slot unavailable", day, start_time, end_time)
        raise SlotUnavailable("This time slot is not available")

    await claim_day(db, day, version)

    # Re-run with the date claimed, immediately before the write.
    if not await is_slot_available(db, day, start_time, end_time, exclude_booking_id):
        raise SlotUnavailable("This time slot is not available")
