"""Per-date version rows guarding concurrent writes to the same day."""

from datetime import date

from sqlalchemy import Date, Integer
from sqlalchemy.orm import Mapped, mapped_column

from photobooking.database import Base


class ScheduleDay(Base):
    """One row per calendar date that has ever held an active booking.

    Every write that places an interval on a date bumps ``version`` with a
    compare-and-set, so two writers that both passed the availability check
    for the same date cannot both commit.
    """

    __tablename__ = "schedule_days"

    day: Mapped[date] = mapped_column(Date, primary_key=True)
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        return f"<ScheduleDay(day={self.day}, version={self.version})>"
