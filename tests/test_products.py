# ==============================================================================
# PRODUCT TESTS
# ==============================================================================
# Listing, search, ownership and stock movements
# ==============================================================================

import pytest
from httpx import AsyncClient

from agricsmart.core.exceptions import BusinessRuleError, InsufficientStockError
from agricsmart.schemas.product import ProductSearchParams
from agricsmart.services.product_service import (
    ProductService,
    build_nearby_query,
    build_search_query,
    normalize_status,
)
from conftest import ACCRA, product_payload


class TestProductCreate:
    """Tests for listing products."""

    @pytest.mark.asyncio
    async def test_seller_creates_product(self, client: AsyncClient, seller: dict):
        response = await client.post(
            "/api/v1/market/products",
            json=product_payload(),
            headers=seller["headers"],
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["seller_id"] == seller["id"]
        assert data["status"] == "active"
        assert data["location"]["coordinates"] == ACCRA

    @pytest.mark.asyncio
    async def test_buyer_cannot_create(self, client: AsyncClient, buyer: dict):
        response = await client.post(
            "/api/v1/market/products",
            json=product_payload(),
            headers=buyer["headers"],
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Only sellers can create products"

    @pytest.mark.asyncio
    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.post("/api/v1/market/products", json=product_payload())
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_price(self, client: AsyncClient, seller: dict):
        response = await client.post(
            "/api/v1/market/products",
            json=product_payload(price=0),
            headers=seller["headers"],
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_get_and_list_by_seller(self, client: AsyncClient, seller: dict, create_product):
        product = await create_product(seller)

        response = await client.get(f"/api/v1/market/products/{product['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["name"] == "Fresh Tomatoes"

        response = await client.get(f"/api/v1/market/products/seller/{seller['id']}")
        assert [p["id"] for p in response.json()["data"]] == [product["id"]]

    @pytest.mark.asyncio
    async def test_get_missing_product(self, client: AsyncClient):
        response = await client.get("/api/v1/market/products/64b7f0c2a1b2c3d4e5f60718")
        assert response.status_code == 404


class TestProductUpdate:
    """Tests for updating and deleting products."""

    @pytest.mark.asyncio
    async def test_owner_updates(self, client: AsyncClient, seller: dict, create_product):
        product = await create_product(seller)

        response = await client.patch(
            f"/api/v1/market/products/{product['id']}",
            json={"price": 15.0},
            headers=seller["headers"],
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["price"] == 15.0
        assert data["name"] == product["name"]

    @pytest.mark.asyncio
    async def test_other_seller_cannot_update(
        self, client: AsyncClient, seller: dict, make_user, create_product
    ):
        product = await create_product(seller)
        other = await make_user("Seller")

        response = await client.patch(
            f"/api/v1/market/products/{product['id']}",
            json={"price": 1.0},
            headers=other["headers"],
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_zero_quantity_marks_sold_out(self, client: AsyncClient, seller: dict, create_product):
        product = await create_product(seller)

        response = await client.patch(
            f"/api/v1/market/products/{product['id']}",
            json={"quantity": 0},
            headers=seller["headers"],
        )
        assert response.json()["data"]["status"] == "sold-out"

        response = await client.patch(
            f"/api/v1/market/products/{product['id']}",
            json={"quantity": 4},
            headers=seller["headers"],
        )
        assert response.json()["data"]["status"] == "active"

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, seller: dict, create_product):
        product = await create_product(seller)

        response = await client.delete(
            f"/api/v1/market/products/{product['id']}",
            headers=seller["headers"],
        )
        assert response.status_code == 200

        response = await client.get(f"/api/v1/market/products/{product['id']}")
        assert response.status_code == 404


class TestProductSearch:
    """Tests for product search."""

    @pytest.mark.asyncio
    async def test_search_filters(self, client: AsyncClient, seller: dict, create_product):
        await create_product(seller, name="Fresh Tomatoes", price=12.5)
        await create_product(
            seller,
            name="Yellow Maize",
            description="Dried yellow maize from the north.",
            category="Grains",
            price=40.0,
        )
        await create_product(seller, name="Hidden Cassava", status="inactive")

        response = await client.get("/api/v1/market/products/search", params={"query": "tomato"})
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["name"] == "Fresh Tomatoes"

        response = await client.get("/api/v1/market/products/search", params={"category": "grains"})
        assert [p["name"] for p in response.json()["data"]["items"]] == ["Yellow Maize"]

        response = await client.get(
            "/api/v1/market/products/search",
            params={"min_price": 20, "max_price": 50},
        )
        assert [p["name"] for p in response.json()["data"]["items"]] == ["Yellow Maize"]

        response = await client.get("/api/v1/market/products/search")
        assert response.json()["data"]["total"] == 2

    @pytest.mark.asyncio
    async def test_search_pagination(self, client: AsyncClient, seller: dict, create_product):
        for price in (5.0, 6.0, 7.0):
            await create_product(seller, price=price)

        response = await client.get(
            "/api/v1/market/products/search",
            params={"sort_by": "price", "sort_order": "asc", "page": 2, "page_size": 2},
        )
        data = response.json()["data"]
        assert data["total"] == 3
        assert data["pages"] == 2
        assert [p["price"] for p in data["items"]] == [7.0]

    @pytest.mark.asyncio
    async def test_invalid_price_range(self, client: AsyncClient):
        response = await client.get(
            "/api/v1/market/products/search",
            params={"min_price": 50, "max_price": 10},
        )
        assert response.status_code == 400

    def test_search_query_escapes_regex(self):
        query = build_search_query(ProductSearchParams(query="a+b"))
        assert query["$or"][0]["name"]["$regex"] == r"a\+b"
        assert query["status"] == "active"

    def test_nearby_query_shape(self):
        query = build_nearby_query(ACCRA, 25)
        near = query["location"]["$near"]
        assert near["$geometry"] == {"type": "Point", "coordinates": ACCRA}
        assert near["$maxDistance"] == 25000
        assert query["status"] == "active"


class TestStockMovements:
    """Tests for reserve/release at the service level."""

    def test_normalize_status(self):
        assert normalize_status(0, "active") == "sold-out"
        assert normalize_status(3, "sold-out") == "active"
        assert normalize_status(3, "inactive") == "inactive"

    @pytest.mark.asyncio
    async def test_reserve_and_release(self, adapter, seller: dict, create_product):
        product = await create_product(seller, quantity=2)
        service = ProductService(adapter)

        reserved = await service.reserve_stock(product["id"], 2)
        assert reserved["quantity"] == 0
        assert reserved["status"] == "sold-out"

        with pytest.raises(InsufficientStockError):
            await service.reserve_stock(product["id"], 1)

        await service.release_stock(product["id"], 2)
        restored = await service.get_product_document(product["id"])
        assert restored["quantity"] == 2
        assert restored["status"] == "active"

    @pytest.mark.asyncio
    async def test_last_units_marked_sold_out_in_one_write(
        self, adapter, seller: dict, create_product, monkeypatch
    ):
        product = await create_product(seller, quantity=5)
        service = ProductService(adapter)

        partial = await service.reserve_stock(product["id"], 3)
        assert (partial["quantity"], partial["status"]) == (2, "active")

        async def no_follow_up_write(*args, **kwargs):
            raise RuntimeError("connection lost")

        monkeypatch.setattr(adapter, "update_one", no_follow_up_write)
        await service.reserve_stock(product["id"], 2)

        stored = await service.get_product_document(product["id"])
        assert (stored["quantity"], stored["status"]) == (0, "sold-out")

        await service.release_stock(product["id"], 1)
        stored = await service.get_product_document(product["id"])
        assert (stored["quantity"], stored["status"]) == (1, "active")

    @pytest.mark.asyncio
    async def test_reserve_inactive_product(self, adapter, seller: dict, create_product):
        product = await create_product(seller, status="inactive")
        service = ProductService(adapter)

        with pytest.raises(BusinessRuleError):
            await service.reserve_stock(product["id"], 1)
