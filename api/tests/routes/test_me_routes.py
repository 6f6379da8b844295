"""Tests for account creation and the current user endpoints."""

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tests.factories import ADMIN_ID, USER_ID

pytestmark = pytest.mark.integration


class TestCreateAccount:
    """Tests for POST /api/v1/user/create."""

    async def test_creates_account_for_new_identity(
        self, newcomer_client: AsyncClient
    ):
        response = await newcomer_client.post("/api/v1/user/create")

        assert response.status_code == 201
        user_id = response.json()["id"]

        me = await newcomer_client.get("/api/v1/me")
        assert me.status_code == 200
        assert me.json()["id"] == user_id

    async def test_existing_account_returns_409(self, user_client: AsyncClient):
        response = await user_client.post("/api/v1/user/create")

        assert response.status_code == 409

    async def test_identity_without_role_is_403(self, no_role_client: AsyncClient):
        response = await no_role_client.post("/api/v1/user/create")

        assert response.status_code == 403

    async def test_requires_token(self, client: AsyncClient):
        response = await client.post("/api/v1/user/create")

        assert response.status_code == 401


class TestMe:
    """Tests for GET/PUT /api/v1/me."""

    async def test_returns_identity_settings_and_permissions(
        self, admin_client: AsyncClient
    ):
        response = await admin_client.get("/api/v1/me")

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == ADMIN_ID
        assert data["user"]["sub"] == "admin-sub"
        assert data["user"]["roles"] == ["admin"]
        assert data["settings"]["displayAssociates"] is False
        assert data["permissions"]["age"] == {
            "canCreate": True,
            "canEdit": True,
            "canDelete": True,
        }
        assert data["permissions"]["canManageAllEntries"] is True

    async def test_plain_user_permissions(self, user_client: AsyncClient):
        data = (await user_client.get("/api/v1/me")).json()

        assert data["permissions"]["species"]["canCreate"] is False
        assert data["permissions"]["canViewAllEntries"] is False

    async def test_update_settings(self, user_client: AsyncClient):
        response = await user_client.put(
            "/api/v1/me", json={"defaultNumber": 2, "displayWeather": True}
        )

        assert response.status_code == 200
        assert response.json()["id"] == USER_ID
        settings = (await user_client.get("/api/v1/me")).json()["settings"]
        assert settings["defaultNumber"] == 2
        assert settings["displayWeather"] is True

    async def test_invalid_setting_is_422(self, user_client: AsyncClient):
        response = await user_client.put("/api/v1/me", json={"defaultNumber": 0})

        assert response.status_code == 422

    async def test_unregistered_identity_is_403(self, newcomer_client: AsyncClient):
        response = await newcomer_client.get("/api/v1/me")

        assert response.status_code == 403

    async def test_registered_identity_without_role_is_403(
        self, no_role_client: AsyncClient
    ):
        response = await no_role_client.get("/api/v1/me")

        assert response.status_code == 403

    async def test_invalid_token_is_401(self, app: FastAPI):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Authorization": "Bearer revoked"},
        ) as ac:
            response = await ac.get("/api/v1/me")

        assert response.status_code == 401
