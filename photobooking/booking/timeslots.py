"""Time-of-day arithmetic, interval overlap, and the candidate slot grid.

Times are ``HH:MM`` strings on a 24h clock. Once normalized to zero-padded
form they compare correctly as strings, which is what the persistence query
relies on; the helpers here work in minutes from midnight.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

MINUTES_PER_DAY = 24 * 60


def normalize_time(value: str) -> str:
    """Validate an ``H:MM``/``HH:MM`` string and return it zero-padded.

    Raises:
        ValueError: If the value is not a valid 24h time of day.
    """
    match = _TIME_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise ValueError(f"Invalid time format (HH:MM): {value!r}")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def to_minutes(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes from midnight."""
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    """Convert minutes from midnight to a zero-padded ``HH:MM`` string."""
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {total}")
    return f"{total // 60:02d}:{total % 60:02d}"


def duration_minutes(start_time: str, end_time: str) -> int:
    """Length of ``[start_time, end_time)`` in minutes (negative if inverted)."""
    return to_minutes(end_time) - to_minutes(start_time)


@dataclass(frozen=True)
class TimeSlot:
    """A half-open ``[start_time, end_time)`` interval within one day."""

    start_time: str
    end_time: str

    @property
    def duration(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    def overlaps(self, other: "TimeSlot") -> bool:
        return overlaps(self.start_time, self.end_time, other.start_time, other.end_time)


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Return True when two half-open intervals on the same day intersect.

    Touching intervals (one ends exactly when the other starts) do not
    overlap. The test is symmetric in its two intervals.
    """
    return to_minutes(start_a) < to_minutes(end_b) and to_minutes(end_a) > to_minutes(start_b)


class SlotGrid:
    """Candidate slots of a fixed duration inside business hours.

    Iterating yields ``TimeSlot`` objects whose start times step from
    ``opening`` by ``step`` minutes while the slot still ends by ``closing``.
    The grid is lazy and can be iterated any number of times.
    """

    def __init__(self, opening: str, closing: str, duration: int, step: int = 30) -> None:
        if duration <= 0:
            raise ValueError("Slot duration must be positive")
        if step <= 0:
            raise ValueError("Slot step must be positive")
        self.opening = to_minutes(opening)
        self.closing = to_minutes(closing)
        self.duration = duration
        self.step = step

    def __iter__(self) -> Iterator[TimeSlot]:
        start = self.opening
        while start + self.duration <= self.closing:
            yield TimeSlot(from_minutes(start), from_minutes(start + self.duration))
            start += self.step

    def __repr__(self) -> str:
        return (
            f"<SlotGrid({from_minutes(self.opening)}-{from_minutes(self.closing)}, "
            f"duration={self.duration}, step={self.step})>"
        )
