"""Tests for the email and Stripe collaborator helpers."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from photobooking.database import run_after_commit
from photobooking.services.email import deliver_email, queue_booking_email, render_booking_email
from photobooking.services.stripe_client import to_minor_units


def _booking(**overrides) -> SimpleNamespace:
    fields = {
        "id": "b-1",
        "service": SimpleNamespace(name="Family Portrait"),
        "booking_date": date(2030, 6, 10),
        "start_time": "09:00",
        "end_time": "10:00",
        "participants_count": 4,
        "location_type": "outdoor",
        "photographer_name": "To be assigned",
        "total_amount": Decimal("2000.00"),
        "currency": "MAD",
        "cancellation_reason": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


_CLIENT = SimpleNamespace(email="client@studio.ma", full_name="Yasmine Tazi")


class _RecordingSender:
    def __init__(self) -> None:
        self.sent = []

    async def send(self, message) -> None:
        self.sent.append(message)


class TestRenderBookingEmail:
    def test_confirmation(self) -> None:
        message = render_booking_email("booking_confirmation", _booking(), _CLIENT)
        assert message.recipient == "client@studio.ma"
        assert message.subject == "Booking Confirmed: Family Portrait on 2030-06-10"
        assert "Dear Yasmine Tazi" in message.body
        assert "09:00 - 10:00" in message.body
        assert "2000.00 MAD" in message.body

    def test_cancellation_reason(self) -> None:
        message = render_booking_email("booking_cancellation", _booking(), _CLIENT, reason="Storm warning")
        assert "Reason: Storm warning" in message.body

    def test_reminder(self) -> None:
        message = render_booking_email("booking_reminder", _booking(), _CLIENT)
        assert message.subject == "Reminder: your Family Portrait session on 2030-06-10"
        assert "Photographer: To be assigned" in message.body

    def test_unknown_template(self) -> None:
        with pytest.raises(ValueError):
            render_booking_email("booking_invoice", _booking(), _CLIENT)


class _FailingSender:
    async def send(self, message) -> None:
        raise ConnectionError("SMTP relay unreachable")


def _session() -> SimpleNamespace:
    return SimpleNamespace(info={})


@pytest.mark.asyncio
class TestQueueBookingEmail:
    async def test_sent_only_after_commit(self) -> None:
        sender = _RecordingSender()
        session = _session()
        assert queue_booking_email(session, sender, "booking_confirmation", _booking(), _CLIENT) is True
        assert sender.sent == []

        assert await run_after_commit(session) == 1
        assert [message.template for message in sender.sent] == ["booking_confirmation"]

    async def test_no_sender(self) -> None:
        session = _session()
        assert queue_booking_email(session, None, "booking_confirmation", _booking(), _CLIENT) is False
        assert session.info == {}

    async def test_disabled(self) -> None:
        sender = _RecordingSender()
        session = _session()
        with patch("photobooking.services.email.settings.email_enabled", False):
            assert queue_booking_email(session, sender, "booking_confirmation", _booking(), _CLIENT) is False
        assert await run_after_commit(session) == 0
        assert sender.sent == []

    async def test_render_failure_is_logged_not_raised(self) -> None:
        session = _session()
        assert queue_booking_email(session, _RecordingSender(), "booking_invoice", _booking(), _CLIENT) is False
        assert session.info == {}

    async def test_send_failure_is_logged_not_raised(self) -> None:
        message = render_booking_email("booking_reminder", _booking(), _CLIENT)
        assert await deliver_email(_FailingSender(), message) is False


class TestMinorUnits:
    @pytest.mark.parametrize(
        ("amount", "expected"),
        [(Decimal("500.00"), 50000), (Decimal("19.995"), 2000), (Decimal("0.01"), 1)],
    )
    def test_conversion(self, amount: Decimal, expected: int) -> None:
        assert to_minor_units(amount) == expected
