"""
Store service for store management and store-wide fulfillment.

Covers store creation and lookup, per-store order status totals, and the
store shipment trigger that ships every fulfilled item of every order in a
store at once.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.core.logging import get_logger, log_performance
from merchdash.database.models.store import Store
from merchdash.services.orders.enums import OrderItemStatus, StoreStatus
from merchdash.services.orders.repository import (
    OrderConflictError,
    OrderRepository,
    OrderRepositoryError,
)
from merchdash.services.orders.service import format_order
from merchdash.services.orders.state_machine import advance_items, derive_order_status
from merchdash.services.stores.repository import (
    StoreNotFoundError,
    StoreRepository,
    StoreRepositoryError,
)

logger = get_logger(__name__)


class StoreServiceError(Exception):
    """Base exception for store service errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class StoreValidationError(StoreServiceError):
    """Raised when store data is invalid."""

    pass


class StoreProcessingError(StoreServiceError):
    """Raised when a store operation fails."""

    pass


class StoreService:
    """
    Store service.

    Attributes:
        repository: Store repository
        order_repository: Order repository used by store-wide operations
    """

    def __init__(self, session: AsyncSession):
        self.repository = StoreRepository(session)
        self.order_repository = OrderRepository(session)

    async def create_store(self, **fields: Any) -> dict[str, Any]:
        """
        Create a store.

        Raises:
            StoreValidationError: If the date window is invalid
            StoreProcessingError: If the store cannot be saved
        """
        open_date: datetime = fields["open_date"]
        close_date: Optional[datetime] = fields.get("close_date")
        if close_date is not None and close_date < open_date:
            raise StoreValidationError(
                "Store close date must not be before its open date",
                open_date=open_date.isoformat(),
                close_date=close_date.isoformat(),
            )

        try:
            store = await self.repository.create_store(**fields)
        except StoreRepositoryError as e:
            raise StoreProcessingError(
                "Failed to create store",
                error=str(e),
            ) from e

        return self._format_store_response(store)

    async def get_store(self, store_id: uuid.UUID) -> dict[str, Any]:
        """
        Get store details.

        Raises:
            StoreNotFoundError: If store not found
            StoreProcessingError: If retrieval fails
        """
        store = await self._load_store(store_id)
        return self._format_store_response(store)

    async def list_stores(
        self,
        status: Optional[StoreStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> dict[str, Any]:
        """
        List stores with pagination.

        Raises:
            StoreProcessingError: If retrieval fails
        """
        try:
            stores, total_count = await self.repository.list_stores(
                status=status,
                skip=skip,
                limit=limit,
            )
        except StoreRepositoryError as e:
            logger.error("Failed to list stores", error=str(e))
            raise StoreProcessingError(
                "Failed to list stores",
                error=str(e),
            ) from e

        return {
            "stores": [self._format_store_response(store) for store in stores],
            "total_count": total_count,
            "skip": skip,
            "limit": limit,
        }

    async def get_order_status_totals(self, store_id: uuid.UUID) -> dict[str, int]:
        """
        Count a store's orders per aggregate order status.

        Returns:
            Counts keyed by order status value plus ``total``

        Raises:
            StoreNotFoundError: If store not found
            StoreProcessingError: If the count fails
        """
        await self._load_store(store_id)

        try:
            counts = await self.repository.count_orders_by_status(store_id)
        except StoreRepositoryError as e:
            raise StoreProcessingError(
                "Failed to count store orders",
                store_id=str(store_id),
                error=str(e),
            ) from e

        totals = {status.value: count for status, count in counts.items()}
        totals["total"] = sum(counts.values())
        return totals

    async def trigger_shipment(
        self,
        store_id: uuid.UUID,
        user_id: str,
    ) -> dict[str, Any]:
        """
        Ship every ``Fulfilled`` item of every order in a store.

        Each affected order gets its status re-derived and is saved in the
        request transaction. Orders without fulfilled items are not touched,
        so running the trigger twice changes nothing the second time.

        Args:
            store_id: Store identifier
            user_id: Acting user recorded in the shipped items' meta

        Returns:
            Dictionary with the updated orders and the number of shipped items

        Raises:
            StoreNotFoundError: If store not found
            OrderConflictError: If an order changed while being shipped
            StoreProcessingError: If the shipment fails
        """
        await self._load_store(store_id)
        logger.info("Triggering store shipment", store_id=str(store_id))

        updated_orders = []
        shipped_items = 0
        try:
            with log_performance(logger, "trigger_shipment", store_id=str(store_id)):
                orders = await self.order_repository.get_orders_with_item_status(
                    store_id, OrderItemStatus.FULFILLED
                )
                for order in orders:
                    items, moved = advance_items(
                        order.items,
                        OrderItemStatus.FULFILLED,
                        OrderItemStatus.SHIPPED,
                        user_id,
                    )
                    if not moved:
                        continue
                    order.items = items
                    order.order_status = derive_order_status(items, order.order_status)
                    await self.order_repository.save(order)
                    updated_orders.append(order)
                    shipped_items += moved
        except OrderConflictError:
            raise
        except OrderRepositoryError as e:
            logger.error(
                "Store shipment failed",
                store_id=str(store_id),
                error=str(e),
            )
            raise StoreProcessingError(
                "Failed to trigger store shipment",
                store_id=str(store_id),
                error=str(e),
            ) from e

        logger.info(
            "Store shipment triggered",
            store_id=str(store_id),
            order_count=len(updated_orders),
            shipped_items=shipped_items,
        )
        return {
            "store_id": str(store_id),
            "updated_order_count": len(updated_orders),
            "shipped_item_count": shipped_items,
            "orders": [format_order(order) for order in updated_orders],
        }

    async def _load_store(self, store_id: uuid.UUID) -> Store:
        try:
            store = await self.repository.get_store_by_id(store_id)
        except StoreRepositoryError as e:
            raise StoreProcessingError(
                "Failed to retrieve store",
                store_id=str(store_id),
                error=str(e),
            ) from e

        if store is None:
            raise StoreNotFoundError("Store not found", store_id=str(store_id))
        return store

    def _format_store_response(self, store: Store) -> dict[str, Any]:
        data = store.to_dict()
        data["status"] = store.status.value
        return data
