"""Caller-facing error kinds raised by the booking engine and services."""

from http import HTTPStatus


class BookingError(Exception):
    """Base class for recoverable booking errors.

    Each subclass maps to one HTTP status code; ``main.py`` renders any
    ``BookingError`` as ``{"detail": ..., "error": ...}``.
    """

    status_code: int = HTTPStatus.BAD_REQUEST
    kind: str = "booking_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(BookingError):
    """Referenced booking, service, or notification does not exist."""

    status_code = HTTPStatus.NOT_FOUND
    kind = "not_found"


class SlotUnavailable(BookingError):
    """Requested interval overlaps an active booking on the same date."""

    status_code = HTTPStatus.CONFLICT
    kind = "slot_unavailable"


class InvalidInterval(BookingError):
    """End time not after start time, or booking date not in the future."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    kind = "invalid_interval"


class CapacityExceeded(BookingError):
    """Participant count exceeds the service maximum."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    kind = "capacity_exceeded"


class InvalidTransition(BookingError):
    """Requested status change is not allowed from the current state."""

    status_code = HTTPStatus.CONFLICT
    kind = "invalid_transition"


class Unauthorized(BookingError):
    """Actor is neither the owner nor an admin, or lacks the admin role."""

    status_code = HTTPStatus.FORBIDDEN
    kind = "unauthorized"


class ValidationFailure(BookingError):
    """Malformed or missing required input."""

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY
    kind = "validation_failure"
