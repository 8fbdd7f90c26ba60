"""
Tests for OrderRepository error translation with a mocked session.
"""

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from merchdash.services.orders.enums import OrderItemStatus, OrderStatus
from merchdash.services.orders.repository import (
    OrderConflictError,
    OrderCreationError,
    OrderRepository,
    OrderRepositoryError,
    OrderUpdateError,
)


@pytest.fixture
def repository(mock_session: AsyncMock) -> OrderRepository:
    """
    Create OrderRepository over the mocked session.

    Returns:
        OrderRepository: Repository instance for testing
    """
    return OrderRepository(mock_session)


class TestSave:
    """Tests for versioned saves."""

    @pytest.mark.asyncio
    async def test_save_flushes(self, repository, mock_session, order_factory):
        order = order_factory.order([order_factory.item()])

        result = await repository.save(order)

        assert result is order
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stale_version_is_conflict(
        self, repository, mock_session, order_factory
    ):
        """Test a zero-row versioned UPDATE becomes a conflict."""
        mock_session.flush.side_effect = StaleDataError(
            "UPDATE statement on table 'orders' expected to update 1 row(s); 0 were matched."
        )
        order = order_factory.order([order_factory.item()])

        with pytest.raises(OrderConflictError) as exc_info:
            await repository.save(order)

        assert exc_info.value.context["order_id"] == str(order.id)

    @pytest.mark.asyncio
    async def test_database_error_is_update_error(
        self, repository, mock_session, order_factory
    ):
        mock_session.flush.side_effect = OperationalError("UPDATE", {}, Exception("gone"))
        order = order_factory.order([order_factory.item()])

        with pytest.raises(OrderUpdateError) as exc_info:
            await repository.save(order)

        assert not isinstance(exc_info.value, OrderConflictError)


class TestCreateOrder:
    """Tests for order inserts."""

    @pytest.mark.asyncio
    async def test_create_order(self, repository, mock_session, order_factory, store_id):
        order = await repository.create_order(
            store_id=store_id,
            order_number="ORD-1",
            items=[order_factory.item()],
            summary={"total": 0.0},
            refund={"status": "None", "amount": 0.0},
            customer={},
        )

        assert order.order_status is OrderStatus.UNFULFILLED
        assert order.store_id == store_id
        mock_session.add.assert_called_once_with(order)
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_integrity_error(self, repository, mock_session, store_id):
        mock_session.flush.side_effect = IntegrityError(
            "INSERT", {}, Exception("duplicate key")
        )

        with pytest.raises(OrderCreationError):
            await repository.create_order(
                store_id=store_id,
                order_number="ORD-1",
                items=[],
                summary={},
                refund={},
            )


class TestQueries:
    """Tests for order reads."""

    @pytest.mark.asyncio
    async def test_get_order(self, repository, mock_session, order_factory, store_id):
        order = order_factory.order([order_factory.item()])
        result = MagicMock()
        result.scalar_one_or_none.return_value = order
        mock_session.execute.return_value = result

        assert await repository.get_order(store_id, order.id) is order

    @pytest.mark.asyncio
    async def test_get_order_missing(self, repository, mock_session, store_id):
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        mock_session.execute.return_value = result

        assert await repository.get_order(store_id, uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_store_orders(
        self, repository, mock_session, order_factory, store_id
    ):
        orders = [order_factory.order([order_factory.item()])]
        rows = MagicMock()
        rows.scalars.return_value.all.return_value = orders
        count = MagicMock()
        count.scalar_one.return_value = 5
        mock_session.execute.side_effect = [rows, count]

        result, total = await repository.list_store_orders(
            store_id, status=OrderStatus.SHIPPED, skip=0, limit=1
        )

        assert list(result) == orders
        assert total == 5

    @pytest.mark.asyncio
    async def test_query_failure(self, repository, mock_session, store_id):
        mock_session.execute.side_effect = OperationalError(
            "SELECT", {}, Exception("gone")
        )

        with pytest.raises(OrderRepositoryError):
            await repository.get_orders_with_item_status(
                store_id, OrderItemStatus.FULFILLED
            )
