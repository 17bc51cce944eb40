"""Booking model: time-slot reservations of a service, plus their status history."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Date, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from photobooking.booking import lifecycle
from photobooking.booking.timeslots import duration_minutes
from photobooking.config import settings
from photobooking.database import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

DEFAULT_PHOTOGRAPHER = "To be assigned"


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A client's reservation of a service on one date between two times of day."""

    __tablename__ = "bookings"

    client_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("services.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Schedule
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    status: Mapped[str] = mapped_column(String(20), default=lifecycle.PENDING, nullable=False)
    confirmed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Pricing
    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    additional_fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="MAD", nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), default=lifecycle.PAYMENT_PENDING, nullable=False)
    stripe_session_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    stripe_payment_intent_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Participants
    participants_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    participant_details: Mapped[list | None] = mapped_column(JSON, default=list)

    # Location
    location_type: Mapped[str] = mapped_column(String(20), default="studio", nullable=False)
    location_address: Mapped[dict | None] = mapped_column(JSON, default=dict)
    location_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Photographer
    photographer_name: Mapped[str] = mapped_column(String(100), default=DEFAULT_PHOTOGRAPHER, nullable=False)
    photographer_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    photographer_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    photographer_assigned_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Notes
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Cancellation (populated only when status becomes cancelled)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancelled_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    refund_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    reminder_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)
    last_modified_by: Mapped[uuid.UUID | None] = mapped_column(nullable=True)

    # Relationships
    service: Mapped["Service"] = relationship(lazy="selectin")  # type: ignore[name-defined]  # noqa: F821
    status_history: Mapped[list["BookingStatusEvent"]] = relationship(
        back_populates="booking",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="BookingStatusEvent.id",
    )

    __table_args__ = (
        Index("ix_bookings_client_id_booking_date", "client_id", "booking_date"),
        Index("ix_bookings_service_id_booking_date", "service_id", "booking_date"),
        Index("ix_bookings_status_booking_date", "status", "booking_date"),
        Index("ix_bookings_schedule", "booking_date", "start_time", "end_time"),
    )

    # -----------------------------------------------------------------------
    # Derived state
    # -----------------------------------------------------------------------

    @property
    def duration_minutes(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    @property
    def is_editable(self) -> bool:
        return lifecycle.is_editable(self.status)

    @property
    def is_cancellable(self) -> bool:
        return lifecycle.is_cancellable(
            self.status,
            self.booking_date,
            self.start_time,
            datetime.now(),
            settings.cancellation_notice_hours,
        )

    @property
    def is_payable(self) -> bool:
        return lifecycle.is_payable(self.status, self.payment_status)

    @property
    def needs_confirmation(self) -> bool:
        return lifecycle.needs_confirmation(self.status, self.payment_status)

    def snapshot(self) -> lifecycle.BookingSnapshot:
        return lifecycle.BookingSnapshot(
            client_id=self.client_id,
            status=self.status,
            payment_status=self.payment_status,
            booking_date=self.booking_date,
            start_time=self.start_time,
        )

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, date={self.booking_date}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )


class BookingStatusEvent(Base):
    """One entry of a booking's append-only status history."""

    __tablename__ = "booking_status_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    changed_by: Mapped[uuid.UUID] = mapped_column(nullable=False)
    changed_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    booking: Mapped["Booking"] = relationship(back_populates="status_history")

    def __repr__(self) -> str:
        return f"<BookingStatusEvent(booking_id={self.booking_id}, status={self.status})>"
