"""Tests for the caller-facing error kinds."""

from http import HTTPStatus

import pytest

from photobooking.booking import errors


@pytest.mark.parametrize(
    ("error_class", "status_code", "kind"),
    [
        (errors.NotFound, 404, "not_found"),
        (errors.SlotUnavailable, 409, "slot_unavailable"),
        (errors.InvalidInterval, 422, "invalid_interval"),
        (errors.CapacityExceeded, 422, "capacity_exceeded"),
        (errors.InvalidTransition, 409, "invalid_transition"),
        (errors.Unauthorized, 403, "unauthorized"),
        (errors.ValidationFailure, 422, "validation_failure"),
    ],
)
def test_error_kinds(error_class: type[errors.BookingError], status_code: int, kind: str) -> None:
    error = error_class("details")
    assert isinstance(error, errors.BookingError)
    assert error.status_code == status_code
    assert isinstance(error.status_code, HTTPStatus)
    assert error.kind == kind
    assert error.detail == "details"


def test_no_web_framework_dependency() -> None:
    assert "fastapi" not in vars(errors)
    assert "status" not in vars(errors)
