"""
Pytest configuration and shared test fixtures.

Sets test environment variables before the application is imported, and
provides the async HTTP client, mocked database session and factories for
order item and order documents.
"""

import os

os.environ.setdefault("APP_ENVIRONMENT", "test")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "false")

import uuid
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.database.models.order import Order, empty_refund
from merchdash.main import app
from merchdash.services.orders.enums import (
    OrderItemStatus,
    OrderStatus,
    ShippingMethod,
)

STORE_ID = uuid.UUID("6a1f7c9e-2b4d-4e8f-9a0b-1c2d3e4f5a6b")
USER_ID = "staff-ada"


class OrderFactory:
    """Builds order item documents and transient Order rows."""

    @staticmethod
    def item(
        status: OrderItemStatus = OrderItemStatus.UNFULFILLED,
        item_id: Optional[str] = None,
        quantity: int = 1,
        price: float = 12.5,
        inventory_product_id: str = "TEE-100",
        inventory_sku_id: str = "TEE-100-BLK-M",
        meta: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Create an order item document in ``status``."""
        if meta is None:
            meta = {
                OrderItemStatus.UNFULFILLED.value: {
                    "user": "checkout",
                    "updatedAt": "2026-05-01T10:00:00+00:00",
                }
            }
            if status is not OrderItemStatus.UNFULFILLED:
                meta[status.value] = {
                    "user": "staff-grace",
                    "updatedAt": "2026-05-02T10:00:00+00:00",
                }
        return {
            "id": item_id or uuid.uuid4().hex,
            "sku": {
                "id": "sku-1",
                "storeProductId": "sp-1",
                "inventoryProductId": inventory_product_id,
                "inventorySkuId": inventory_sku_id,
                "size": {"label": "M"},
                "color": {"label": "Black"},
            },
            "merchandiseCode": "TEE",
            "name": "Event Tee",
            "image": "",
            "price": price,
            "quantity": quantity,
            "itemTotal": round(price * quantity, 2),
            "status": {"current": status.value, "meta": meta},
        }

    @staticmethod
    def order(
        items: list[dict[str, Any]],
        order_status: OrderStatus = OrderStatus.UNFULFILLED,
        store_id: uuid.UUID = STORE_ID,
        version: int = 1,
        summary: Optional[dict[str, float]] = None,
    ) -> Order:
        """Create a transient Order row holding ``items``."""
        now = datetime(2026, 5, 1, 10, 0, tzinfo=timezone.utc)
        return Order(
            id=uuid.uuid4(),
            store_id=store_id,
            order_number="ORD-20260501100000-ABC123",
            stripe_id="pi_123",
            customer={
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "phone": None,
            },
            group="",
            shipping_method=ShippingMethod.PRIMARY,
            shipping_address=None,
            summary=summary
            or {
                "subtotal": 25.0,
                "shipping": 5.0,
                "salesTax": 2.0,
                "total": 32.0,
                "stripeFee": 1.23,
            },
            refund=empty_refund(),
            items=items,
            order_status=order_status,
            note=None,
            version=version,
            created_at=now,
            updated_at=now,
        )


@pytest.fixture
def order_factory() -> type[OrderFactory]:
    """
    Factory for order item documents and orders.

    Returns:
        OrderFactory class
    """
    return OrderFactory


@pytest.fixture
def store_id() -> uuid.UUID:
    """Identifier of the store every test order belongs to."""
    return STORE_ID


@pytest.fixture
def user_id() -> str:
    """Acting staff user."""
    return USER_ID


@pytest.fixture
def mock_session() -> AsyncMock:
    """
    Create mock async database session.

    Returns:
        AsyncMock: Mock database session
    """
    session = AsyncMock(spec=AsyncSession)
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    return session


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """
    Create an asynchronous test client for the FastAPI application.

    Dependency overrides installed by a test are cleared afterwards.

    Yields:
        AsyncClient: Asynchronous test client for FastAPI app
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
