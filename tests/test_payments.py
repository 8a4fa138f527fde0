# ==============================================================================
# PAYMENT TESTS
# ==============================================================================
# Mock providers, order linkage, status lifecycle and the provider webhook
# ==============================================================================

import pytest
from httpx import AsyncClient

from agricsmart.core.constants import Collections
from conftest import order_payload


@pytest.fixture
def place_order(client: AsyncClient, create_product):
    """Place a pickup order for 2 x 12.5 and return it."""

    async def factory(seller: dict, buyer: dict) -> dict:
        product = await create_product(seller, price=12.5)
        response = await client.post(
            "/api/v1/market/orders",
            json=order_payload(seller["id"], [(product["id"], 2)]),
            headers=buyer["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return factory


async def _momo(client: AsyncClient, user: dict, **overrides) -> dict:
    body = {"amount": 25.0, "phone_number": "+233241234567", **overrides}
    response = await client.post("/api/v1/payments/momo", json=body, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreatePayment:
    """Tests for payment creation."""

    @pytest.mark.asyncio
    async def test_generic_payment(self, client: AsyncClient, buyer: dict):
        response = await client.post(
            "/api/v1/payments",
            json={"amount": 50, "payment_method": "bank", "description": "Seeds"},
            headers=buyer["headers"],
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["status"] == "pending"
        assert data["currency"] == "GHS"
        assert data["payment_details"]["reference"].startswith("PAY-")

    @pytest.mark.asyncio
    async def test_momo_payment(self, client: AsyncClient, buyer: dict):
        data = await _momo(client, buyer)

        assert data["payment_method"] == "momo"
        assert data["status"] == "pending"
        assert data["momo_reference"] == data["payment_details"]["reference"]
        assert data["payment_details"]["provider"] == "MTN"
        assert data["payment_details"]["transaction_id"].startswith("MOMO-")
        assert data["instructions"] == "Check your phone to confirm payment"

    @pytest.mark.asyncio
    async def test_card_keeps_last_four_only(self, client: AsyncClient, adapter, buyer: dict):
        response = await client.post(
            "/api/v1/payments/card",
            json={
                "amount": 30,
                "card_number": "4111 1111 1111 1234",
                "expiry_month": 12,
                "expiry_year": 2030,
                "cvv": "123",
                "card_type": "visa",
            },
            headers=buyer["headers"],
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["payment_details"]["last4"] == "1234"
        assert data["payment_details"]["card_type"] == "visa"

        stored = await adapter.get_by_id(Collections.PAYMENTS, data["id"])
        assert "4111111111111234" not in str(stored)
        assert "cvv" not in stored["payment_details"]

    @pytest.mark.asyncio
    async def test_linked_to_order(
        self, client: AsyncClient, seller: dict, buyer: dict, place_order
    ):
        order = await place_order(seller, buyer)
        payment = await _momo(client, buyer, order_id=order["id"], amount=25.0)

        response = await client.get(f"/api/v1/market/orders/{order['id']}", headers=buyer["headers"])
        assert response.json()["data"]["payment_id"] == payment["id"]
        assert response.json()["data"]["payment_status"] == "pending"

    @pytest.mark.asyncio
    async def test_amount_must_match_order(
        self, client: AsyncClient, seller: dict, buyer: dict, place_order
    ):
        order = await place_order(seller, buyer)

        response = await client.post(
            "/api/v1/payments/momo",
            json={"order_id": order["id"], "amount": 10.0, "phone_number": "+233241234567"},
            headers=buyer["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_only_buyer_pays(
        self, client: AsyncClient, seller: dict, buyer: dict, place_order
    ):
        order = await place_order(seller, buyer)

        response = await client.post(
            "/api/v1/payments/momo",
            json={"order_id": order["id"], "amount": 25.0, "phone_number": "+233241234567"},
            headers=seller["headers"],
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_phone(self, client: AsyncClient, buyer: dict):
        response = await client.post(
            "/api/v1/payments/momo",
            json={"amount": 5, "phone_number": "call me"},
            headers=buyer["headers"],
        )
        assert response.status_code == 400


class TestPaymentQueries:
    """Tests for payment visibility."""

    @pytest.mark.asyncio
    async def test_owner_admin_and_stranger(
        self, client: AsyncClient, buyer: dict, admin: dict, make_user
    ):
        payment = await _momo(client, buyer)

        response = await client.get("/api/v1/payments", headers=buyer["headers"])
        assert [p["id"] for p in response.json()["data"]] == [payment["id"]]

        response = await client.get(f"/api/v1/payments/{payment['id']}", headers=admin["headers"])
        assert response.status_code == 200

        stranger = await make_user("Buyer")
        response = await client.get(f"/api/v1/payments/{payment['id']}", headers=stranger["headers"])
        assert response.status_code == 403


class TestPaymentStatus:
    """Tests for the payment lifecycle."""

    @pytest.mark.asyncio
    async def test_admin_completes_and_refunds(
        self, client: AsyncClient, adapter, seller: dict, buyer: dict, admin: dict, place_order
    ):
        order = await place_order(seller, buyer)
        payment = await _momo(client, buyer, order_id=order["id"])

        response = await client.patch(
            f"/api/v1/payments/{payment['id']}/status",
            json={"status": "completed"},
            headers=admin["headers"],
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "completed"

        event = await adapter.find_one(
            Collections.OUTBOX,
            {"dedupe_key": f"payment-received:{payment['id']}"},
        )
        assert event["payload"] == {"order_id": order["id"], "payment_id": payment["id"]}

        response = await client.patch(
            f"/api/v1/payments/{payment['id']}/status",
            json={"status": "refunded"},
            headers=admin["headers"],
        )
        assert response.json()["data"]["status"] == "refunded"

    @pytest.mark.asyncio
    async def test_invalid_transition(self, client: AsyncClient, buyer: dict, admin: dict):
        payment = await _momo(client, buyer)

        response = await client.patch(
            f"/api/v1/payments/{payment['id']}/status",
            json={"status": "refunded"},
            headers=admin["headers"],
        )
        assert response.status_code == 400
        assert response.json()["code"] == "BUSINESS_RULE_VIOLATION"

    @pytest.mark.asyncio
    async def test_unknown_status(self, client: AsyncClient, buyer: dict, admin: dict):
        payment = await _momo(client, buyer)

        response = await client.patch(
            f"/api/v1/payments/{payment['id']}/status",
            json={"status": "lost"},
            headers=admin["headers"],
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, client: AsyncClient, buyer: dict):
        payment = await _momo(client, buyer)

        response = await client.patch(
            f"/api/v1/payments/{payment['id']}/status",
            json={"status": "completed"},
            headers=buyer["headers"],
        )
        assert response.status_code == 403


class TestWebhook:
    """Tests for the provider callback."""

    @pytest.mark.asyncio
    async def test_successful_callback(
        self, client: AsyncClient, adapter, seller: dict, buyer: dict, place_order
    ):
        order = await place_order(seller, buyer)
        payment = await _momo(client, buyer, order_id=order["id"])

        response = await client.post(
            "/api/v1/payments/webhook",
            json={
                "reference": payment["momo_reference"],
                "status": "successful",
                "transactionId": "MTN-998877",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "completed"

        stored = await adapter.get_by_id(Collections.PAYMENTS, payment["id"])
        assert stored["status"] == "completed"
        assert stored["payment_details"]["transaction_id"] == "MTN-998877"

        response = await client.get(f"/api/v1/market/orders/{order['id']}", headers=buyer["headers"])
        assert response.json()["data"]["payment_status"] == "completed"

        assert await adapter.count(
            Collections.OUTBOX,
            {"dedupe_key": f"payment-received:{payment['id']}"},
        ) == 1

    @pytest.mark.asyncio
    async def test_redelivered_callback_is_harmless(self, client: AsyncClient, buyer: dict):
        payment = await _momo(client, buyer)
        body = {"reference": payment["momo_reference"], "status": "failed"}

        first = await client.post("/api/v1/payments/webhook", json=body)
        second = await client.post("/api/v1/payments/webhook", json=body)

        assert first.json()["status"] == "failed"
        assert second.json()["success"] is True
        assert second.json()["status"] == "failed"

    @pytest.mark.asyncio
    async def test_unknown_reference(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payments/webhook",
            json={"reference": "MOMO-missing", "status": "successful"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/payments/webhook",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_rejected_transition_reported(self, client: AsyncClient, buyer: dict):
        payment = await _momo(client, buyer)
        await client.post(
            "/api/v1/payments/webhook",
            json={"reference": payment["momo_reference"], "status": "failed"},
        )

        response = await client.post(
            "/api/v1/payments/webhook",
            json={"reference": payment["momo_reference"], "status": "successful"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is False


class TestOnePaymentPerOrder:
    """An order is backed by at most one live payment."""

    @pytest.mark.asyncio
    async def test_second_payment_rejected_while_pending(
        self, client: AsyncClient, adapter, seller: dict, buyer: dict, place_order
    ):
        order = await place_order(seller, buyer)
        first = await _momo(client, buyer, order_id=order["id"])

        response = await client.post(
            "/api/v1/payments/momo",
            json={"amount": 25.0, "phone_number": "+233241234567", "order_id": order["id"]},
            headers=buyer["headers"],
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BUSINESS_RULE_VIOLATION"
        stored = await adapter.get_by_id(Collections.ORDERS, order["id"])
        assert stored["payment_id"] == first["id"]
        assert await adapter.count(Collections.PAYMENTS, {"order_id": order["id"]}) == 1

    @pytest.mark.asyncio
    async def test_retry_allowed_after_failure(
        self, client: AsyncClient, adapter, seller: dict, buyer: dict, admin: dict, place_order
    ):
        order = await place_order(seller, buyer)
        first = await _momo(client, buyer, order_id=order["id"])
        await client.patch(
            f"/api/v1/payments/{first['id']}/status",
            json={"status": "failed"},
            headers=admin["headers"],
        )

        second = await _momo(client, buyer, order_id=order["id"])

        stored = await adapter.get_by_id(Collections.ORDERS, order["id"])
        assert stored["payment_id"] == second["id"]

    @pytest.mark.asyncio
    async def test_superseded_payment_cannot_complete(
        self, client: AsyncClient, adapter, seller: dict, buyer: dict, admin: dict, place_order
    ):
        order = await place_order(seller, buyer)
        stale = await _momo(client, buyer, order_id=order["id"])
        # Order now points at a different payment
        await adapter.update(Collections.ORDERS, order["id"], {"payment_id": "another-payment"})

        response = await client.patch(
            f"/api/v1/payments/{stale['id']}/status",
            json={"status": "completed"},
            headers=admin["headers"],
        )

        assert response.status_code == 400
        assert response.json()["code"] == "BUSINESS_RULE_VIOLATION"
        payment = await adapter.get_by_id(Collections.PAYMENTS, stale["id"])
        assert payment["status"] == "pending"

    @pytest.mark.asyncio
    async def test_completed_order_cannot_be_paid_again(
        self, client: AsyncClient, seller: dict, buyer: dict, admin: dict, place_order
    ):
        order = await place_order(seller, buyer)
        payment = await _momo(client, buyer, order_id=order["id"])
        await client.patch(
            f"/api/v1/payments/{payment['id']}/status",
            json={"status": "completed"},
            headers=admin["headers"],
        )

        response = await client.post(
            "/api/v1/payments/card",
            json={
                "amount": 25.0,
                "order_id": order["id"],
                "card_number": "4111111111111111",
                "expiry_month": 12,
                "expiry_year": 2030,
                "cvv": "123",
            },
            headers=buyer["headers"],
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Order has already been paid"


class TestPaymentReference:
    """Tests for client-supplied references."""

    @pytest.mark.asyncio
    async def test_reused_reference_conflicts(
        self, client: AsyncClient, adapter, make_user
    ):
        await adapter.db[Collections.PAYMENTS].create_index(
            "payment_details.reference", unique=True
        )
        first, second = await make_user("Buyer"), await make_user("Buyer")
        body = {"amount": 10, "payment_method": "bank", "payment_details": {"reference": "REF-1"}}

        response = await client.post("/api/v1/payments", json=body, headers=first["headers"])
        assert response.status_code == 201

        response = await client.post("/api/v1/payments", json=body, headers=second["headers"])
        assert response.status_code == 409
        assert response.json()["code"] == "ALREADY_EXISTS"
