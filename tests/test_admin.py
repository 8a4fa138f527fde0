# ==============================================================================
# ADMIN TESTS
# ==============================================================================

import pytest
from httpx import AsyncClient

from agricsmart.core.constants import Collections


class TestAdminUsers:
    """Tests for user administration."""

    @pytest.mark.asyncio
    async def test_list_users_by_role(
        self, client: AsyncClient, admin: dict, seller: dict, buyer: dict
    ):
        response = await client.get("/api/v1/admin/users", headers=admin["headers"])
        assert response.status_code == 200
        assert len(response.json()["data"]) == 3

        response = await client.get(
            "/api/v1/admin/users",
            params={"role": "Seller"},
            headers=admin["headers"],
        )
        users = response.json()["data"]
        assert [u["id"] for u in users] == [seller["id"]]
        assert "hashed_password" not in users[0]

    @pytest.mark.asyncio
    async def test_change_role(self, client: AsyncClient, admin: dict, buyer: dict):
        response = await client.patch(
            f"/api/v1/admin/users/{buyer['id']}/role",
            json={"role": "Seller"},
            headers=admin["headers"],
        )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "Seller"

    @pytest.mark.asyncio
    async def test_invalid_role(self, client: AsyncClient, admin: dict, buyer: dict):
        response = await client.patch(
            f"/api/v1/admin/users/{buyer['id']}/role",
            json={"role": "Overlord"},
            headers=admin["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_deactivate_blocks_access(self, client: AsyncClient, admin: dict, buyer: dict):
        response = await client.patch(
            f"/api/v1/admin/users/{buyer['id']}/status",
            json={"is_active": False},
            headers=admin["headers"],
        )
        assert response.json()["data"]["is_active"] is False

        response = await client.get("/api/v1/auth/me", headers=buyer["headers"])
        assert response.status_code == 401

        await client.patch(
            f"/api/v1/admin/users/{buyer['id']}/status",
            json={"is_active": True},
            headers=admin["headers"],
        )
        response = await client.get("/api/v1/auth/me", headers=buyer["headers"])
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_user(self, client: AsyncClient, admin: dict):
        response = await client.patch(
            "/api/v1/admin/users/64b7f0c2a1b2c3d4e5f60718/role",
            json={"role": "Seller"},
            headers=admin["headers"],
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, client: AsyncClient, seller: dict):
        for path in ("/api/v1/admin/users", "/api/v1/admin/stats"):
            response = await client.get(path, headers=seller["headers"])
            assert response.status_code == 403
            assert response.json()["code"] == "AUTHORIZATION_ERROR"


class TestPlatformStats:
    """Tests for the admin dashboard figures."""

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, adapter, admin: dict, seller: dict, buyer: dict):
        await adapter.create(
            Collections.PRODUCTS,
            {"seller_id": seller["id"], "name": "Yam", "status": "active", "quantity": 3},
        )
        await adapter.create(
            Collections.PRODUCTS,
            {"seller_id": seller["id"], "name": "Okra", "status": "sold-out", "quantity": 0},
        )
        await adapter.create(Collections.ORDERS, {"buyer_id": buyer["id"], "order_status": "pending"})
        await adapter.create(Collections.ORDERS, {"buyer_id": buyer["id"], "order_status": "delivered"})
        await adapter.create(
            Collections.PAYMENTS,
            {"user_id": buyer["id"], "amount": 20.5, "currency": "GHS", "status": "completed"},
        )
        await adapter.create(
            Collections.PAYMENTS,
            {"user_id": buyer["id"], "amount": 10.0, "currency": "GHS", "status": "completed"},
        )
        await adapter.create(
            Collections.PAYMENTS,
            {"user_id": buyer["id"], "amount": 99.0, "currency": "GHS", "status": "pending"},
        )

        response = await client.get("/api/v1/admin/stats", headers=admin["headers"])

        assert response.status_code == 200
        stats = response.json()["data"]
        assert stats["users_by_role"] == {"Admin": 1, "Seller": 1, "Buyer": 1}
        assert stats["total_users"] == 3
        assert stats["active_products"] == 1
        assert stats["total_orders"] == 2
        assert stats["orders_by_status"] == {"pending": 1, "delivered": 1}
        assert stats["completed_payment_volume"] == {"GHS": 30.5}
        assert stats["published_courses"] == 0
