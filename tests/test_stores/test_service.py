"""
Test suite for StoreService: store reads, order status totals and the
store shipment trigger.
"""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from merchdash.database.models.store import Store
from merchdash.services.orders.enums import OrderItemStatus, OrderStatus
from merchdash.services.orders.repository import (
    OrderConflictError,
    OrderRepositoryError,
)
from merchdash.services.stores.repository import StoreNotFoundError
from merchdash.services.stores.service import (
    StoreProcessingError,
    StoreService,
    StoreValidationError,
)

U = OrderItemStatus.UNFULFILLED
F = OrderItemStatus.FULFILLED
S = OrderItemStatus.SHIPPED
C = OrderItemStatus.CANCELED


# ============================================================================
# Test Fixtures
# ============================================================================


def make_store(store_id: uuid.UUID, **overrides) -> Store:
    now = datetime.now(timezone.utc)
    fields = {
        "id": store_id,
        "name": "Spring Fling",
        "open_date": now - timedelta(days=1),
        "close_date": now + timedelta(days=6),
        "permanently_open": False,
        "allow_direct_shipping": True,
        "allow_store_pickup": False,
        "primary_shipping_location": None,
        "contact": {"name": "Grace", "email": "grace@example.com"},
        "require_group_selection": False,
        "group_term": "",
        "groups": [],
        "show_on_stores_page": True,
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Store(**fields)


@pytest.fixture
def store_service(mock_session: AsyncMock, store_id: uuid.UUID) -> StoreService:
    """
    Create StoreService with mocked repositories.

    The store repository returns an open store for ``store_id``; the order
    repository's save returns the order it is given.

    Returns:
        StoreService: Service instance for testing
    """
    service = StoreService(mock_session)
    service.repository = AsyncMock()
    service.repository.get_store_by_id.return_value = make_store(store_id)
    service.order_repository = AsyncMock()
    service.order_repository.save.side_effect = lambda order: order
    return service


# ============================================================================
# Shipment Trigger Tests
# ============================================================================


class TestTriggerShipment:
    """Tests for shipping every fulfilled item of a store."""

    @pytest.mark.asyncio
    async def test_ships_fulfilled_items(
        self, store_service, order_factory, store_id, user_id
    ):
        """Test fulfilled items ship and order statuses are re-derived."""
        all_fulfilled = order_factory.order(
            [order_factory.item(F), order_factory.item(C)],
            order_status=OrderStatus.FULFILLED,
        )
        mixed = order_factory.order([order_factory.item(F), order_factory.item(U)])
        store_service.order_repository.get_orders_with_item_status.return_value = [
            all_fulfilled,
            mixed,
        ]

        result = await store_service.trigger_shipment(store_id, user_id)

        assert result["updated_order_count"] == 2
        assert result["shipped_item_count"] == 2
        assert all_fulfilled.order_status is OrderStatus.SHIPPED
        assert mixed.order_status is OrderStatus.PARTIALLY_SHIPPED
        shipped_item = all_fulfilled.items[0]
        assert shipped_item["status"]["current"] == "Shipped"
        assert set(shipped_item["status"]["meta"]) == {"Unfulfilled", "Fulfilled", "Shipped"}
        assert shipped_item["status"]["meta"]["Shipped"]["user"] == user_id
        assert store_service.order_repository.save.await_count == 2
        store_service.order_repository.get_orders_with_item_status.assert_awaited_once_with(
            store_id, OrderItemStatus.FULFILLED
        )

    @pytest.mark.asyncio
    async def test_trigger_is_idempotent(
        self, store_service, order_factory, store_id, user_id
    ):
        """Test a second trigger changes nothing."""
        order = order_factory.order(
            [order_factory.item(F), order_factory.item(S)],
            order_status=OrderStatus.PARTIALLY_SHIPPED,
        )
        store_service.order_repository.get_orders_with_item_status.return_value = [order]

        await store_service.trigger_shipment(store_id, user_id)
        items_after_first = [dict(item) for item in order.items]
        second = await store_service.trigger_shipment(store_id, user_id)

        assert second["updated_order_count"] == 0
        assert second["shipped_item_count"] == 0
        assert order.items == items_after_first
        assert order.order_status is OrderStatus.SHIPPED
        assert store_service.order_repository.save.await_count == 1

    @pytest.mark.asyncio
    async def test_store_not_found(self, store_service, user_id):
        store_service.repository.get_store_by_id.return_value = None

        with pytest.raises(StoreNotFoundError):
            await store_service.trigger_shipment(uuid.uuid4(), user_id)

        store_service.order_repository.get_orders_with_item_status.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_conflict_propagates(
        self, store_service, order_factory, store_id, user_id
    ):
        order = order_factory.order([order_factory.item(F)])
        store_service.order_repository.get_orders_with_item_status.return_value = [order]
        store_service.order_repository.save.side_effect = OrderConflictError("stale")

        with pytest.raises(OrderConflictError):
            await store_service.trigger_shipment(store_id, user_id)

    @pytest.mark.asyncio
    async def test_repository_failure(self, store_service, store_id, user_id):
        store_service.order_repository.get_orders_with_item_status.side_effect = (
            OrderRepositoryError("down")
        )

        with pytest.raises(StoreProcessingError):
            await store_service.trigger_shipment(store_id, user_id)


# ============================================================================
# Store Read Tests
# ============================================================================


class TestStoreReads:
    """Tests for store lookups and order totals."""

    @pytest.mark.asyncio
    async def test_order_status_totals(self, store_service, store_id):
        store_service.repository.count_orders_by_status.return_value = {
            OrderStatus.UNFULFILLED: 3,
            OrderStatus.FULFILLED: 1,
            OrderStatus.PARTIALLY_SHIPPED: 0,
            OrderStatus.SHIPPED: 4,
            OrderStatus.CANCELED: 2,
        }

        totals = await store_service.get_order_status_totals(store_id)

        assert totals == {
            "Unfulfilled": 3,
            "Fulfilled": 1,
            "PartiallyShipped": 0,
            "Shipped": 4,
            "Canceled": 2,
            "total": 10,
        }

    @pytest.mark.asyncio
    async def test_get_store_includes_status(self, store_service, store_id):
        store = await store_service.get_store(store_id)

        assert store["id"] == str(store_id)
        assert store["status"] == "open"

    @pytest.mark.asyncio
    async def test_get_store_not_found(self, store_service):
        store_service.repository.get_store_by_id.return_value = None

        with pytest.raises(StoreNotFoundError):
            await store_service.get_store(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_create_store_rejects_inverted_window(self, store_service):
        now = datetime.now(timezone.utc)

        with pytest.raises(StoreValidationError):
            await store_service.create_store(
                name="Backwards",
                open_date=now,
                close_date=now - timedelta(days=1),
            )

        store_service.repository.create_store.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_stores(self, store_service, store_id):
        store_service.repository.list_stores.return_value = (
            [make_store(store_id)],
            1,
        )

        result = await store_service.list_stores(skip=0, limit=10)

        assert result["total_count"] == 1
        assert result["stores"][0]["name"] == "Spring Fling"
