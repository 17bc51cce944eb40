"""Aggregate statistics over booking history."""

import uuid
from collections import Counter
from collections.abc import Hashable, Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from photobooking.booking.lifecycle import BOOKING_STATUSES, REVENUE_STATUSES

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class BookingFact:
    """The fields of one booking that statistics are computed from."""

    status: str
    total_amount: Decimal
    discount: Decimal = Decimal("0")
    service_id: uuid.UUID | None = None
    service_name: str | None = None
    photographer: str | None = None


@dataclass
class BookingStats:
    total: int = 0
    per_status: dict[str, int] = field(default_factory=lambda: dict.fromkeys(BOOKING_STATUSES, 0))
    total_revenue: Decimal = Decimal("0.00")
    average_booking_value: Decimal = Decimal("0.00")
    total_discounts: Decimal = Decimal("0.00")
    top_services: list[tuple[uuid.UUID, str | None, int]] = field(default_factory=list)
    top_photographers: list[tuple[str, int]] = field(default_factory=list)


def rank_by_frequency(keys: Iterable[Hashable], limit: int) -> list[tuple[Hashable, int]]:
    """Count ``keys`` and return the ``limit`` most frequent, descending.

    Ties keep the order in which keys were first encountered.
    """
    counts = Counter(keys)
    # sorted() is stable and Counter preserves insertion order
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)[:limit]


def compute_stats(facts: Iterable[BookingFact], top_n: int = 5) -> BookingStats:
    """Aggregate counts, revenue, and top-N rankings.

    Revenue only counts confirmed and completed bookings; the average
    booking value is taken over every booking in ``facts``.
    """
    stats = BookingStats()
    service_names: dict[uuid.UUID, str | None] = {}
    service_keys: list[uuid.UUID] = []
    photographer_keys: list[str] = []
    amount_sum = Decimal("0")

    for fact in facts:
        stats.total += 1
        stats.per_status[fact.status] = stats.per_status.get(fact.status, 0) + 1
        amount = fact.total_amount or Decimal("0")
        amount_sum += amount
        if fact.status in REVENUE_STATUSES:
            stats.total_revenue += amount
        stats.total_discounts += fact.discount or Decimal("0")
        if fact.service_id is not None:
            service_names.setdefault(fact.service_id, fact.service_name)
            service_keys.append(fact.service_id)
        if fact.photographer:
            photographer_keys.append(fact.photographer)

    if stats.total:
        stats.average_booking_value = (amount_sum / stats.total).quantize(_CENTS, rounding=ROUND_HALF_UP)
    stats.total_revenue = stats.total_revenue.quantize(_CENTS, rounding=ROUND_HALF_UP)
    stats.total_discounts = stats.total_discounts.quantize(_CENTS, rounding=ROUND_HALF_UP)

    stats.top_services = [
        (service_id, service_names.get(service_id), count)
        for service_id, count in rank_by_frequency(service_keys, top_n)
    ]
    stats.top_photographers = list(rank_by_frequency(photographer_keys, top_n))
    return stats
