"""Tests for GET /api/v1/bookings/admin/stats."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


def _future(days: int = 30) -> date:
    return date.today() + timedelta(days=days)


class TestBookingStats:
    async def test_empty(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.get("/api/v1/bookings/admin/stats", headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 0
        assert Decimal(data["average_booking_value"]) == Decimal("0")
        assert data["per_status"]["pending"] == 0
        assert data["top_services"] == []

    async def test_aggregates(
        self, client: AsyncClient, admin_headers: dict, test_user, test_service, make_booking
    ) -> None:
        day = _future()
        await make_booking(
            test_user, test_service, day, "09:00", "10:00", status="confirmed", photographer_name="Nadia"
        )
        await make_booking(
            test_user,
            test_service,
            day,
            "10:00",
            "11:00",
            status="completed",
            photographer_name="Nadia",
            total_amount=Decimal("250.00"),
            discount=Decimal("50.00"),
        )
        await make_booking(test_user, test_service, day, "11:00", "12:00", status="cancelled")

        response = await client.get("/api/v1/bookings/admin/stats", headers=admin_headers)
        data = response.json()
        assert data["total"] == 3
        assert data["per_status"]["confirmed"] == 1
        assert data["per_status"]["completed"] == 1
        assert data["per_status"]["cancelled"] == 1
        assert Decimal(data["total_revenue"]) == Decimal("750.00")
        assert Decimal(data["average_booking_value"]) == Decimal("416.67")
        assert Decimal(data["total_discounts"]) == Decimal("50.00")
        assert data["top_services"] == [
            {"service_id": str(test_service.id), "name": "Portrait Session", "count": 3}
        ]
        assert data["top_photographers"][0] == {"name": "Nadia", "count": 2}

    async def test_date_range(
        self, client: AsyncClient, admin_headers: dict, test_user, test_service, make_booking
    ) -> None:
        await make_booking(
            test_user, test_service, _future(), "09:00", "10:00", created_at=datetime(2020, 3, 15, 23, 30)
        )
        await make_booking(
            test_user, test_service, _future(), "10:00", "11:00", created_at=datetime(2020, 3, 16, 8, 0)
        )

        response = await client.get(
            "/api/v1/bookings/admin/stats",
            params={"start_date": "2020-03-01", "end_date": "2020-03-15"},
            headers=admin_headers,
        )
        assert response.json()["total"] == 1

    async def test_client_forbidden(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.get("/api/v1/bookings/admin/stats", headers=auth_headers)
        assert response.status_code == 403
