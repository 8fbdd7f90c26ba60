"""
Order data access repository with optimistic concurrency.

Implements the OrderRepository class providing async methods for creating
orders, fetching them scoped to a store, listing a store's orders with
filters, and saving item/status changes. Saves go through SQLAlchemy's
version counter, so a write based on a stale read fails with
``OrderConflictError`` instead of silently overwriting a concurrent update.
"""

import uuid
from typing import Any, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from merchdash.core.logging import get_logger
from merchdash.database.models.order import Order
from merchdash.services.orders.enums import OrderItemStatus, OrderStatus

logger = get_logger(__name__)


class OrderRepositoryError(Exception):
    """Base exception for order repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class OrderNotFoundError(OrderRepositoryError):
    """Raised when order is not found."""

    pass


class OrderCreationError(OrderRepositoryError):
    """Raised when order creation fails."""

    pass


class OrderUpdateError(OrderRepositoryError):
    """Raised when order update fails."""

    pass


class OrderConflictError(OrderUpdateError):
    """Raised when the order changed since it was read."""

    pass


class OrderRepository:
    """
    Repository for order data access operations.

    Every method flushes but never commits; the request-scoped session
    commits once at the end so multi-order operations land together.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize order repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def create_order(
        self,
        store_id: uuid.UUID,
        order_number: str,
        items: list[dict[str, Any]],
        summary: dict[str, Any],
        refund: dict[str, Any],
        **fields: Any,
    ) -> Order:
        """
        Create an order in the ``Unfulfilled`` status.

        Args:
            store_id: Store the order belongs to
            order_number: Human-readable order number
            items: Item documents, already carrying their initial status
            summary: Money summary document
            refund: Refund document
            **fields: Remaining order columns (customer, group, ...)

        Returns:
            Created order

        Raises:
            OrderCreationError: If order creation fails
        """
        order = Order(
            store_id=store_id,
            order_number=order_number,
            items=items,
            summary=summary,
            refund=refund,
            order_status=OrderStatus.UNFULFILLED,
            **fields,
        )

        try:
            self.session.add(order)
            await self.session.flush()
        except IntegrityError as e:
            logger.error(
                "Order creation failed - integrity error",
                store_id=str(store_id),
                order_number=order_number,
                error=str(e),
            )
            raise OrderCreationError(
                "Order creation failed due to data integrity violation",
                order_number=order_number,
                error=str(e),
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                "Order creation failed - database error",
                store_id=str(store_id),
                order_number=order_number,
                error=str(e),
            )
            raise OrderCreationError(
                "Order creation failed due to database error",
                order_number=order_number,
                error=str(e),
            ) from e

        logger.info(
            "Order created",
            order_id=str(order.id),
            store_id=str(store_id),
            order_number=order_number,
            item_count=len(items),
        )
        return order

    async def get_order(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Optional[Order]:
        """
        Get an order that belongs to ``store_id``.

        Returns:
            Order if found in that store, None otherwise

        Raises:
            OrderRepositoryError: If the query fails
        """
        try:
            stmt = select(Order).where(
                Order.id == order_id,
                Order.store_id == store_id,
            )
            result = await self.session.execute(stmt)
            order = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch order",
                order_id=str(order_id),
                store_id=str(store_id),
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to fetch order",
                order_id=str(order_id),
                error=str(e),
            ) from e

        if order is None:
            logger.debug(
                "Order not found",
                order_id=str(order_id),
                store_id=str(store_id),
            )
        return order

    async def list_store_orders(
        self,
        store_id: uuid.UUID,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Order], int]:
        """
        Get a store's orders with pagination, newest first.

        Args:
            store_id: Store identifier
            status: Optional aggregate status filter
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Tuple of (orders, total_count)

        Raises:
            OrderRepositoryError: If query fails
        """
        conditions = [Order.store_id == store_id]
        if status is not None:
            conditions.append(Order.order_status == status)

        stmt = (
            select(Order)
            .where(*conditions)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(Order).where(*conditions)

        try:
            result = await self.session.execute(stmt)
            count_result = await self.session.execute(count_stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch store orders",
                store_id=str(store_id),
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to fetch store orders",
                store_id=str(store_id),
                error=str(e),
            ) from e

        orders = result.scalars().all()
        total_count = count_result.scalar_one()

        logger.debug(
            "Store orders fetched",
            store_id=str(store_id),
            count=len(orders),
            total=total_count,
        )
        return orders, total_count

    async def get_orders_with_item_status(
        self,
        store_id: uuid.UUID,
        item_status: OrderItemStatus,
    ) -> Sequence[Order]:
        """
        Get a store's orders that contain at least one item in ``item_status``.

        Uses JSONB containment on the items document.

        Raises:
            OrderRepositoryError: If query fails
        """
        stmt = (
            select(Order)
            .where(
                Order.store_id == store_id,
                Order.items.contains([{"status": {"current": item_status.value}}]),
            )
            .order_by(Order.created_at)
        )

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch orders by item status",
                store_id=str(store_id),
                item_status=item_status.value,
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to fetch orders by item status",
                store_id=str(store_id),
                error=str(e),
            ) from e

        return result.scalars().all()

    async def save(self, order: Order) -> Order:
        """
        Flush pending changes to an order.

        The UPDATE is guarded by the version the order was loaded with.

        Raises:
            OrderConflictError: If another writer updated the order first
            OrderUpdateError: If the write fails for any other reason
        """
        try:
            await self.session.flush()
        except StaleDataError as e:
            logger.warning(
                "Order update conflict",
                order_id=str(order.id),
                version=order.version,
            )
            raise OrderConflictError(
                "Order was modified by another request",
                order_id=str(order.id),
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                "Order update failed",
                order_id=str(order.id),
                error=str(e),
            )
            raise OrderUpdateError(
                "Order update failed",
                order_id=str(order.id),
                error=str(e),
            ) from e

        logger.debug(
            "Order saved",
            order_id=str(order.id),
            order_status=order.order_status.value,
            version=order.version,
        )
        return order
