"""Tests for slot listing and availability checks."""

import uuid
from datetime import date, timedelta

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def _future(days: int = 30) -> date:
    return date.today() + timedelta(days=days)


def _starts(response) -> list[str]:
    return [slot["start_time"] for slot in response.json()["slots"]]


class TestAvailableSlots:
    """GET /api/v1/bookings/available-slots"""

    async def test_empty_day_full_grid(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": _future(10).isoformat(), "duration": 60},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["duration"] == 60
        starts = _starts(response)
        assert starts[0] == "09:00"
        assert starts[-1] == "17:00"
        assert len(starts) == 17
        assert data["slots"][0] == {"start_time": "09:00", "end_time": "10:00", "duration": 60}

    async def test_confirmed_booking_blocks_overlapping_slots(
        self, client: AsyncClient, test_user, test_service, make_booking
    ) -> None:
        day = _future(11)
        await make_booking(test_user, test_service, day, "10:00", "11:00", status="confirmed")

        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": day.isoformat(), "duration": 60},
        )
        starts = _starts(response)
        for blocked in ("09:30", "10:00", "10:30"):
            assert blocked not in starts
        assert "09:00" in starts
        assert "11:00" in starts

    @pytest.mark.parametrize("status", ["cancelled", "completed", "no-show", "in-progress"])
    async def test_inactive_statuses_do_not_block(
        self, client: AsyncClient, test_user, test_service, make_booking, status: str
    ) -> None:
        day = _future(12)
        await make_booking(test_user, test_service, day, "10:00", "11:00", status=status)

        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": day.isoformat(), "duration": 60},
        )
        assert "10:00" in _starts(response)

    async def test_other_day_does_not_block(self, client: AsyncClient, test_user, test_service, make_booking) -> None:
        day = _future(13)
        await make_booking(test_user, test_service, day + timedelta(days=1), "10:00", "11:00")

        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": day.isoformat(), "duration": 60},
        )
        assert "10:00" in _starts(response)

    async def test_duration_from_service(self, client: AsyncClient, test_service) -> None:
        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": _future(14).isoformat(), "service_id": str(test_service.id)},
        )
        assert response.status_code == 200
        assert response.json()["duration"] == 60

    async def test_explicit_duration_wins_over_service(self, client: AsyncClient, test_service) -> None:
        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": _future(14).isoformat(), "service_id": str(test_service.id), "duration": 120},
        )
        data = response.json()
        assert data["duration"] == 120
        assert data["slots"][-1]["start_time"] == "16:00"

    async def test_default_duration(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/bookings/available-slots", params={"date": _future(15).isoformat()})
        assert response.json()["duration"] == 60

    async def test_unknown_service(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": _future(15).isoformat(), "service_id": str(uuid.uuid4())},
        )
        assert response.status_code == 404

    async def test_duration_longer_than_business_day(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": _future(16).isoformat(), "duration": 600},
        )
        assert response.status_code == 200
        assert response.json()["slots"] == []

    async def test_fully_booked_day(self, client: AsyncClient, test_user, test_service, make_booking) -> None:
        day = _future(17)
        await make_booking(test_user, test_service, day, "09:00", "18:00", status="confirmed")

        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": day.isoformat(), "duration": 30},
        )
        assert response.json()["slots"] == []

    async def test_zero_duration_rejected(self, client: AsyncClient) -> None:
        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": _future(18).isoformat(), "duration": 0},
        )
        assert response.status_code == 422

    async def test_every_listed_slot_checks_available(
        self, client: AsyncClient, auth_headers: dict, test_user, test_service, make_booking
    ) -> None:
        day = _future(19)
        await make_booking(test_user, test_service, day, "09:30", "10:15", status="confirmed")
        await make_booking(test_user, test_service, day, "13:00", "14:30")
        await make_booking(test_user, test_service, day, "16:45", "17:15", status="confirmed")

        response = await client.get(
            "/api/v1/bookings/available-slots",
            params={"date": day.isoformat(), "duration": 45},
        )
        slots = response.json()["slots"]
        assert slots
        for slot in slots:
            check = await client.post(
                "/api/v1/bookings/check-availability",
                json={"booking_date": day.isoformat(), "start_time": slot["start_time"], "end_time": slot["end_time"]},
                headers=auth_headers,
            )
            assert check.json()["available"] is True, slot


class TestCheckAvailability:
    """POST /api/v1/bookings/check-availability"""

    async def test_free_interval(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.post(
            "/api/v1/bookings/check-availability",
            json={"booking_date": _future(20).isoformat(), "start_time": "10:00", "end_time": "11:00"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"available": True, "conflicts": 0}

    async def test_conflicting_interval(
        self, client: AsyncClient, auth_headers: dict, test_user, test_service, make_booking
    ) -> None:
        day = _future(21)
        await make_booking(test_user, test_service, day, "10:00", "11:00")
        await make_booking(test_user, test_service, day, "11:00", "12:00", status="confirmed")

        response = await client.post(
            "/api/v1/bookings/check-availability",
            json={"booking_date": day.isoformat(), "start_time": "10:30", "end_time": "11:30"},
            headers=auth_headers,
        )
        assert response.json() == {"available": False, "conflicts": 2}

    async def test_touching_interval_is_free(
        self, client: AsyncClient, auth_headers: dict, test_user, test_service, make_booking
    ) -> None:
        day = _future(22)
        await make_booking(test_user, test_service, day, "10:00", "11:00")

        response = await client.post(
            "/api/v1/bookings/check-availability",
            json={"booking_date": day.isoformat(), "start_time": "11:00", "end_time": "12:00"},
            headers=auth_headers,
        )
        assert response.json()["available"] is True

    async def test_exclude_booking(
        self, client: AsyncClient, auth_headers: dict, test_user, test_service, make_booking
    ) -> None:
        day = _future(23)
        booking = await make_booking(test_user, test_service, day, "10:00", "11:00")

        response = await client.post(
            "/api/v1/bookings/check-availability",
            json={
                "booking_date": day.isoformat(),
                "start_time": "10:00",
                "end_time": "11:00",
                "exclude_booking_id": str(booking.id),
            },
            headers=auth_headers,
        )
        assert response.json()["available"] is True

    async def test_cancel_frees_slot(self, client: AsyncClient, auth_headers: dict, test_service) -> None:
        day = _future(24)
        created = await client.post(
            "/api/v1/bookings",
            json={
                "service_id": str(test_service.id),
                "booking_date": day.isoformat(),
                "start_time": "14:00",
                "end_time": "15:00",
            },
            headers=auth_headers,
        )
        booking_id = created.json()["id"]
        check = {"booking_date": day.isoformat(), "start_time": "14:00", "end_time": "15:00"}

        before = await client.post("/api/v1/bookings/check-availability", json=check, headers=auth_headers)
        assert before.json()["available"] is False

        cancelled = await client.patch(f"/api/v1/bookings/{booking_id}/cancel", headers=auth_headers)
        assert cancelled.status_code == 200

        after = await client.post("/api/v1/bookings/check-availability", json=check, headers=auth_headers)
        assert after.json()["available"] is True

    async def test_inverted_interval(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.post(
            "/api/v1/bookings/check-availability",
            json={"booking_date": _future(25).isoformat(), "start_time": "12:00", "end_time": "11:00"},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"] == "invalid_interval"

    async def test_requires_auth(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/bookings/check-availability",
            json={"booking_date": _future(25).isoformat(), "start_time": "10:00", "end_time": "11:00"},
        )
        assert response.status_code == 401
