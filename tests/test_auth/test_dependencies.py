"""Tests for the authentication dependencies through a protected route."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from photobooking.auth.jwt import create_access_token, create_refresh_token

pytestmark = pytest.mark.asyncio

_PROTECTED = "/api/v1/bookings/me"


class TestBearerAuth:
    async def test_missing_token(self, client: AsyncClient) -> None:
        response = await client.get(_PROTECTED)
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_malformed_token(self, client: AsyncClient) -> None:
        response = await client.get(_PROTECTED, headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    async def test_refresh_token_as_access(self, client: AsyncClient, test_user) -> None:
        token = create_refresh_token({"sub": str(test_user.id)})
        response = await client.get(_PROTECTED, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_expired_token(self, client: AsyncClient, test_user) -> None:
        token = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(seconds=-5))
        response = await client.get(_PROTECTED, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_bad_subject(self, client: AsyncClient) -> None:
        token = create_access_token({"sub": "not-a-uuid"})
        response = await client.get(_PROTECTED, headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_inactive_user(
        self, client: AsyncClient, db_session: AsyncSession, test_user, auth_headers: dict
    ) -> None:
        test_user.is_active = False
        await db_session.flush()
        response = await client.get(_PROTECTED, headers=auth_headers)
        assert response.status_code == 401

    async def test_valid_token(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.get(_PROTECTED, headers=auth_headers)
        assert response.status_code == 200


class TestAdminGuard:
    async def test_client_forbidden(self, client: AsyncClient, auth_headers: dict) -> None:
        response = await client.get("/api/v1/bookings/admin/all", headers=auth_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "unauthorized"

    async def test_admin_allowed(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.get("/api/v1/bookings/admin/all", headers=admin_headers)
        assert response.status_code == 200
