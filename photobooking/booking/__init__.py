"""Booking engine: time slots, the status lifecycle and statistics.

Modules in this package are pure: they take plain values and return plain
values. Persistence-backed operations live in ``photobooking.services``.
"""
