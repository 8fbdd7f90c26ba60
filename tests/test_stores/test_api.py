"""
Tests for the store API endpoints.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi import status

from merchdash.api.deps import get_store_service
from merchdash.main import app
from merchdash.services.orders.enums import StoreStatus
from merchdash.services.orders.repository import OrderConflictError
from merchdash.services.stores.repository import StoreNotFoundError
from merchdash.services.stores.service import StoreProcessingError


@pytest.fixture
def store_response(store_id: uuid.UUID) -> dict[str, Any]:
    """
    Formatted store as returned by the service.

    Returns:
        dict: Store response payload
    """
    now = datetime.now(timezone.utc)
    return {
        "id": str(store_id),
        "name": "Spring Fling",
        "open_date": (now - timedelta(days=1)).isoformat(),
        "close_date": None,
        "permanently_open": False,
        "allow_direct_shipping": True,
        "allow_store_pickup": False,
        "primary_shipping_location": None,
        "contact": {},
        "require_group_selection": False,
        "group_term": "",
        "groups": [],
        "show_on_stores_page": True,
        "status": "open",
        "created_at": now.isoformat(),
        "updated_at": now.isoformat(),
    }


@pytest.fixture
def mock_store_service(store_response: dict[str, Any]) -> AsyncMock:
    """
    Install a mocked StoreService for the request.

    Returns:
        AsyncMock: Mock store service
    """
    service = AsyncMock()
    service.create_store.return_value = store_response
    service.get_store.return_value = store_response
    service.list_stores.return_value = {
        "stores": [store_response],
        "total_count": 1,
        "skip": 0,
        "limit": 20,
    }
    app.dependency_overrides[get_store_service] = lambda: service
    return service


class TestStoreEndpoints:
    """Tests for store create, list and get."""

    @pytest.mark.asyncio
    async def test_create_store(self, async_client, mock_store_service):
        response = await async_client.post(
            "/api/v1/stores",
            json={
                "name": "Spring Fling",
                "open_date": "2026-04-01T00:00:00Z",
                "close_date": "2026-04-15T00:00:00Z",
                "groups": ["Staff", "Alumni"],
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        kwargs = mock_store_service.create_store.await_args.kwargs
        assert kwargs["name"] == "Spring Fling"
        assert kwargs["groups"] == ["Staff", "Alumni"]

    @pytest.mark.asyncio
    async def test_create_store_inverted_window(self, async_client, mock_store_service):
        response = await async_client.post(
            "/api/v1/stores",
            json={
                "name": "Backwards",
                "open_date": "2026-04-15T00:00:00Z",
                "close_date": "2026-04-01T00:00:00Z",
            },
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        mock_store_service.create_store.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_stores_filtered(self, async_client, mock_store_service):
        response = await async_client.get(
            "/api/v1/stores", params={"status": "upcoming", "limit": 5}
        )

        assert response.status_code == status.HTTP_200_OK
        mock_store_service.list_stores.assert_awaited_once_with(
            status=StoreStatus.UPCOMING, skip=0, limit=5
        )

    @pytest.mark.asyncio
    async def test_list_all_stores(self, async_client, mock_store_service):
        await async_client.get("/api/v1/stores")

        assert mock_store_service.list_stores.await_args.kwargs["status"] is None

    @pytest.mark.asyncio
    async def test_list_stores_unknown_status(self, async_client, mock_store_service):
        response = await async_client.get("/api/v1/stores", params={"status": "archived"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_get_store_not_found(self, async_client, mock_store_service):
        mock_store_service.get_store.side_effect = StoreNotFoundError("Store not found")

        response = await async_client.get(f"/api/v1/stores/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND


class TestOrderStatusTotalsEndpoint:
    """Tests for GET /stores/{store_id}/order-status-totals."""

    @pytest.mark.asyncio
    async def test_totals(self, async_client, mock_store_service, store_id):
        totals = {
            "Unfulfilled": 1,
            "Fulfilled": 0,
            "PartiallyShipped": 2,
            "Shipped": 0,
            "Canceled": 0,
            "total": 3,
        }
        mock_store_service.get_order_status_totals.return_value = totals

        response = await async_client.get(
            f"/api/v1/stores/{store_id}/order-status-totals"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == totals


class TestTriggerShipmentEndpoint:
    """Tests for POST /stores/{store_id}/trigger-shipment."""

    @pytest.mark.asyncio
    async def test_trigger_shipment(self, async_client, mock_store_service, store_id):
        mock_store_service.trigger_shipment.return_value = {
            "store_id": str(store_id),
            "updated_order_count": 0,
            "shipped_item_count": 0,
            "orders": [],
        }

        response = await async_client.post(
            f"/api/v1/stores/{store_id}/trigger-shipment",
            json={"user_id": "staff-ada"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["shipped_item_count"] == 0
        mock_store_service.trigger_shipment.assert_awaited_once_with(
            store_id, "staff-ada"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,expected_status",
        [
            (StoreNotFoundError("Store not found"), status.HTTP_404_NOT_FOUND),
            (OrderConflictError("modified"), status.HTTP_409_CONFLICT),
            (StoreProcessingError("down"), status.HTTP_500_INTERNAL_SERVER_ERROR),
        ],
    )
    async def test_error_mapping(
        self, async_client, mock_store_service, store_id, error, expected_status
    ):
        mock_store_service.trigger_shipment.side_effect = error

        response = await async_client.post(
            f"/api/v1/stores/{store_id}/trigger-shipment",
            json={"user_id": "staff-ada"},
        )

        assert response.status_code == expected_status
