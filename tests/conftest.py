# ==============================================================================
# CONFTEST - Pytest Fixtures and Configuration
# ==============================================================================
# Shared fixtures for all tests. Every test gets its own in-memory
# MongoDB (mongomock-motor) injected into the app factory.
# ==============================================================================

from __future__ import annotations

import os
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

# Set test environment before importing the app
os.environ["ENVIRONMENT"] = "development"
os.environ["DEBUG"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-32chars!"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["OUTBOX_WORKER_ENABLED"] = "false"
os.environ["OPENAI_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""

from agricsmart.core.constants import Collections  # noqa: E402
from agricsmart.core.security import create_access_token, hash_password  # noqa: E402
from agricsmart.database.adapters.mongodb_adapter import MongoDBAdapter  # noqa: E402
from agricsmart.main import create_app  # noqa: E402

ACCRA = [-0.187, 5.6037]
KUMASI = [-1.6244, 6.6885]

UserFactory = Callable[..., Awaitable[Dict[str, Any]]]


# ==============================================================================
# DATABASE & APP FIXTURES
# ==============================================================================

@pytest_asyncio.fixture
async def adapter() -> AsyncGenerator[MongoDBAdapter, None]:
    """Connected adapter over a fresh in-memory database."""
    adapter = MongoDBAdapter(
        database_name=f"agricsmart_test_{uuid4().hex[:8]}",
        client=AsyncMongoMockClient(),
    )
    await adapter.connect()
    yield adapter
    await adapter.disconnect()


@pytest.fixture
def app(adapter: MongoDBAdapter):
    return create_app(database=adapter)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        timeout=30.0,
    ) as async_client:
        yield async_client


# ==============================================================================
# USER FIXTURES
# ==============================================================================

@pytest.fixture
def make_user(adapter: MongoDBAdapter) -> UserFactory:
    """
    Factory inserting a user straight into the store.

    Returns the user document plus ``token`` and ``headers`` for
    authenticated requests.
    """

    async def factory(
        role: str = "Buyer",
        location: Optional[List[float]] = None,
        **overrides: Any,
    ) -> Dict[str, Any]:
        handle = uuid4().hex[:8]
        data = {
            "username": f"{role.lower()}_{handle}",
            "email": f"{role.lower()}_{handle}@example.com",
            "phone": "+233201234567",
            "hashed_password": hash_password("Password123"),
            "role": role,
            "full_name": f"Test {role}",
            "is_active": True,
            "location": {"type": "Point", "coordinates": location or ACCRA},
        }
        data.update(overrides)
        user = await adapter.create(Collections.USERS, data)
        token = create_access_token(subject=user["id"], additional_claims={"role": role})
        user["token"] = token
        user["headers"] = {"Authorization": f"Bearer {token}"}
        return user

    return factory


@pytest_asyncio.fixture
async def seller(make_user: UserFactory) -> Dict[str, Any]:
    return await make_user("Seller")


@pytest_asyncio.fixture
async def buyer(make_user: UserFactory) -> Dict[str, Any]:
    return await make_user("Buyer", location=KUMASI)


@pytest_asyncio.fixture
async def admin(make_user: UserFactory) -> Dict[str, Any]:
    return await make_user("Admin")


@pytest_asyncio.fixture
async def educator(make_user: UserFactory) -> Dict[str, Any]:
    return await make_user("Educator")


# ==============================================================================
# HELPER FIXTURES
# ==============================================================================

@pytest.fixture
def sample_user_data() -> dict:
    """Generate sample user registration data."""
    handle = uuid4().hex[:8]
    return {
        "username": f"farmer_{handle}",
        "email": f"farmer_{handle}@example.com",
        "password": "SecurePass123",
        "full_name": "Ama Mensah",
        "role": "Buyer",
    }


def product_payload(**overrides: Any) -> dict:
    """Valid product creation body."""
    data = {
        "name": "Fresh Tomatoes",
        "description": "Organic tomatoes harvested this week.",
        "price": 12.5,
        "quantity": 10,
        "category": "Vegetables",
        "location": {"type": "Point", "coordinates": ACCRA},
        "delivery_options": ["pickup", "delivery"],
    }
    data.update(overrides)
    return data


def order_payload(seller_id: str, items: List[tuple], **overrides: Any) -> dict:
    """Order body for ``[(product_id, quantity), ...]``."""
    data = {
        "seller_id": seller_id,
        "products": [{"product_id": pid, "quantity": qty} for pid, qty in items],
        "delivery_address": {
            "street": "12 Market Road",
            "city": "Kumasi",
            "country": "Ghana",
            "coordinates": KUMASI,
        },
        "delivery_method": "pickup",
        "payment_method": "momo",
    }
    data.update(overrides)
    return data


@pytest.fixture
def create_product(client: AsyncClient) -> Callable[..., Awaitable[Dict[str, Any]]]:
    """Create a product through the API as the given seller."""

    async def factory(seller: Dict[str, Any], **overrides: Any) -> Dict[str, Any]:
        response = await client.post(
            "/api/v1/market/products",
            json=product_payload(**overrides),
            headers=seller["headers"],
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return factory
