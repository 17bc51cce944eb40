"""Service model: photography and video offerings that can be booked."""

import uuid
from decimal import Decimal

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from photobooking.database import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Service(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A bookable offering with a price, a duration, and a participant cap."""

    __tablename__ = "services"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)  # minutes
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # photo, video, photo-video
    service_type: Mapped[str] = mapped_column(String(50), nullable=False)  # portrait, wedding, event, ...
    max_participants: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    location_type: Mapped[str] = mapped_column(String(20), default="studio", nullable=False)
    tags: Mapped[list | None] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (Index("ix_services_category_type", "category", "service_type"),)

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name={self.name!r}, price={self.price})>"
