"""Booking status state machine and the orthogonal payment axis.

A transition never mutates anything: ``apply_transition`` validates the
request against the current snapshot and returns the new status together
with exactly one history event. The caller persists both in one flush.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time

from photobooking.booking.errors import InvalidTransition, Unauthorized, ValidationFailure
from photobooking.booking.timeslots import to_minutes

# Booking status
PENDING = "pending"
CONFIRMED = "confirmed"
IN_PROGRESS = "in-progress"
COMPLETED = "completed"
CANCELLED = "cancelled"
NO_SHOW = "no-show"

BOOKING_STATUSES: tuple[str, ...] = (PENDING, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW)

# Only these statuses occupy a time slot.
ACTIVE_STATUSES: frozenset[str] = frozenset({PENDING, CONFIRMED})
EDITABLE_STATUSES: frozenset[str] = ACTIVE_STATUSES
REVENUE_STATUSES: frozenset[str] = frozenset({CONFIRMED, COMPLETED})

# Payment status
PAYMENT_PENDING = "pending"
PAID = "paid"
PARTIALLY_PAID = "partially-paid"
REFUNDED = "refunded"

PAYMENT_STATUSES: tuple[str, ...] = (PAYMENT_PENDING, PAID, PARTIALLY_PAID, REFUNDED)

# Refund status recorded in the cancellation block
REFUND_NONE = "none"
REFUND_PENDING = "pending"

ROLE_CLIENT = "client"
ROLE_ADMIN = "admin"


@dataclass(frozen=True)
class Actor:
    """The authenticated principal performing an operation."""

    id: uuid.UUID
    role: str = ROLE_CLIENT

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class Transition:
    """A named edge of the state machine and its guards."""

    name: str
    sources: frozenset[str]
    target: str
    admin_only: bool = True
    requires_reason: bool = False
    default_reason: str = ""


TRANSITIONS: dict[str, Transition] = {
    "accept": Transition(
        name="accept",
        sources=frozenset({PENDING}),
        target=CONFIRMED,
        default_reason="Reservation confirmed",
    ),
    "reject": Transition(
        name="reject",
        sources=ACTIVE_STATUSES,
        target=CANCELLED,
        requires_reason=True,
    ),
    "cancel": Transition(
        name="cancel",
        sources=ACTIVE_STATUSES,
        target=CANCELLED,
        admin_only=False,
        requires_reason=True,
    ),
    "start_session": Transition(
        name="start_session",
        sources=frozenset({CONFIRMED}),
        target=IN_PROGRESS,
        default_reason="Session started",
    ),
    "complete": Transition(
        name="complete",
        sources=frozenset({IN_PROGRESS}),
        target=COMPLETED,
        default_reason="Session completed",
    ),
    "mark_no_show": Transition(
        name="mark_no_show",
        sources=ACTIVE_STATUSES,
        target=NO_SHOW,
        default_reason="Client did not attend",
    ),
}

# Used when an admin sets ``status`` directly through a booking update.
_TRANSITION_BY_TARGET: dict[str, str] = {
    CONFIRMED: "accept",
    CANCELLED: "cancel",
    IN_PROGRESS: "start_session",
    COMPLETED: "complete",
    NO_SHOW: "mark_no_show",
}


@dataclass(frozen=True)
class BookingSnapshot:
    """The slice of booking state the state machine reads."""

    client_id: uuid.UUID
    status: str
    payment_status: str
    booking_date: date
    start_time: str


@dataclass(frozen=True)
class StatusEvent:
    """One append-only history entry."""

    status: str
    changed_by: uuid.UUID
    changed_at: datetime
    reason: str


@dataclass(frozen=True)
class Cancellation:
    reason: str
    cancelled_by: uuid.UUID
    cancelled_at: datetime
    refund_status: str = REFUND_NONE


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a validated transition: new status plus its history event."""

    transition: Transition
    previous_status: str
    event: StatusEvent
    cancellation: Cancellation | None = None
    confirmed_at: datetime | None = None
    notify: bool = False

    @property
    def status(self) -> str:
        return self.event.status


# ---------------------------------------------------------------------------
# Derived flags
# ---------------------------------------------------------------------------


def scheduled_start(booking_date: date, start_time: str) -> datetime:
    minutes = to_minutes(start_time)
    return datetime.combine(booking_date, time(minutes // 60, minutes % 60))


def hours_until_start(booking_date: date, start_time: str, now: datetime) -> float:
    return (scheduled_start(booking_date, start_time) - now).total_seconds() / 3600


def is_editable(status: str) -> bool:
    return status in EDITABLE_STATUSES


def is_cancellable(
    status: str,
    booking_date: date,
    start_time: str,
    now: datetime,
    notice_hours: int = 24,
) -> bool:
    """Active and more than ``notice_hours`` remain before the scheduled start."""
    return status in ACTIVE_STATUSES and hours_until_start(booking_date, start_time, now) > notice_hours


def is_payable(status: str, payment_status: str) -> bool:
    return status == PENDING and payment_status == PAYMENT_PENDING


def needs_confirmation(status: str, payment_status: str) -> bool:
    """Paid but still waiting for an admin to confirm."""
    return status == PENDING and payment_status == PAID


def should_record_payment(payment_status: str, paid: bool) -> bool:
    """A payment signal changes state only the first time it reports ``paid``."""
    return paid and payment_status != PAID


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def transition_for_status(target: str) -> str:
    """Name of the transition an admin status update to ``target`` performs."""
    name = _TRANSITION_BY_TARGET.get(target)
    if name is None:
        raise InvalidTransition(f"Status cannot be changed to '{target}'")
    return name


def apply_transition(
    snapshot: BookingSnapshot,
    name: str,
    actor: Actor,
    now: datetime,
    reason: str | None = None,
    notice_hours: int = 24,
    recorded_at: datetime | None = None,
) -> TransitionResult:
    """Validate ``name`` against ``snapshot`` and return the resulting state.

    ``now`` is the studio wall-clock time used for the cancellation notice
    window; ``recorded_at`` (defaulting to ``now``) stamps the history event.

    Raises:
        ValidationFailure: Unknown transition, or a required reason is missing.
        Unauthorized: Admin-only transition by a client, or a client acting
            on a booking they do not own.
        InvalidTransition: The current status does not allow the transition,
            or a client cancels inside the notice window.
    """
    transition = TRANSITIONS.get(name)
    if transition is None:
        raise ValidationFailure(f"Unknown booking transition '{name}'")

    if transition.admin_only and not actor.is_admin:
        raise Unauthorized("Admin privileges required")
    if not actor.is_admin and actor.id != snapshot.client_id:
        raise Unauthorized("You do not have permission to modify this booking")

    if snapshot.status not in transition.sources:
        raise InvalidTransition(
            f"Booking cannot be moved to '{transition.target}' because its status is '{snapshot.status}'"
        )

    reason = (reason or "").strip()
    if transition.requires_reason and not reason:
        raise ValidationFailure("A reason is required")

    if (
        transition.target == CANCELLED
        and not actor.is_admin
        and not is_cancellable(snapshot.status, snapshot.booking_date, snapshot.start_time, now, notice_hours)
    ):
        raise InvalidTransition(
            f"This booking can no longer be cancelled (less than {notice_hours}h before the session)"
        )

    stamp = recorded_at or now
    event = StatusEvent(
        status=transition.target,
        changed_by=actor.id,
        changed_at=stamp,
        reason=reason or transition.default_reason,
    )

    cancellation = None
    if transition.target == CANCELLED:
        cancellation = Cancellation(
            reason=event.reason,
            cancelled_by=actor.id,
            cancelled_at=stamp,
            refund_status=REFUND_PENDING if snapshot.payment_status == PAID else REFUND_NONE,
        )

    return TransitionResult(
        transition=transition,
        previous_status=snapshot.status,
        event=event,
        cancellation=cancellation,
        confirmed_at=stamp if transition.target == CONFIRMED else None,
        notify=transition.target in (CONFIRMED, CANCELLED),
    )
