"""
Order service orchestrating item status changes and order reconciliation.

This module implements the OrderService class for creating and reading a
store's orders and for the status-mutating operations: updating one item,
fulfilling every unfulfilled item, and cancelling a whole order. Each
mutation reads the order, computes the new item list and aggregate status in
memory, and writes once. Cancelled quantities can be returned to inventory.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.core.config import get_settings
from merchdash.core.logging import get_logger, log_performance
from merchdash.database.models.order import Order, empty_refund
from merchdash.services.inventory.repository import (
    InventoryRepository,
    InventoryRepositoryError,
)
from merchdash.services.orders.enums import (
    OrderItemStatus,
    OrderStatus,
    RefundStatus,
    ShippingMethod,
)
from merchdash.services.orders.repository import (
    OrderConflictError,
    OrderCreationError,
    OrderNotFoundError,
    OrderRepository,
    OrderRepositoryError,
)
from merchdash.services.orders.state_machine import (
    StateTransitionError,
    advance_items,
    derive_order_status,
    resolve_target_status,
    transition_item,
    utc_timestamp,
)

logger = get_logger(__name__)

SUMMARY_ZEROED_ON_CANCEL = ("subtotal", "shipping", "salesTax", "total")


class OrderServiceError(Exception):
    """Base exception for order service errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class OrderValidationError(OrderServiceError):
    """Raised when order validation fails."""

    pass


class OrderItemNotFoundError(OrderServiceError):
    """Raised when an item id does not match any item of the order."""

    pass


class ItemStatusTransitionError(OrderServiceError):
    """Raised when an item cannot be moved to the requested status."""

    pass


class OrderProcessingError(OrderServiceError):
    """Raised when order processing fails."""

    pass


class OrderService:
    """
    Order service for store orders and item fulfillment.

    Status-mutating methods raise ``OrderNotFoundError`` and
    ``OrderConflictError`` from the repository unchanged so the API layer can
    map them to 404 and 409; other repository failures are wrapped in
    ``OrderProcessingError``.

    Attributes:
        repository: Order repository for data access
        inventory_repository: Inventory repository used for restocking
    """

    def __init__(
        self,
        session: AsyncSession,
        inventory_repository: Optional[InventoryRepository] = None,
    ):
        """
        Initialize order service.

        Args:
            session: Async database session
            inventory_repository: Optional inventory repository instance
        """
        self.repository = OrderRepository(session)
        self.inventory_repository = inventory_repository or InventoryRepository(
            session
        )

    async def create_order(
        self,
        store_id: uuid.UUID,
        user_id: str,
        items: list[dict[str, Any]],
        customer: dict[str, Any],
        summary: Optional[dict[str, Any]] = None,
        shipping_method: ShippingMethod = ShippingMethod.NONE,
        shipping_address: Optional[dict[str, Any]] = None,
        group: str = "",
        stripe_id: Optional[str] = None,
        note: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create an order with every item ``Unfulfilled``.

        Args:
            store_id: Store the order is placed in
            user_id: Acting user recorded in each item's status meta
            items: Item payloads (sku, name, price, quantity, ...)
            customer: Customer document
            summary: Money amounts; missing subtotal/total are computed
            shipping_method: Delivery method
            shipping_address: Address document
            group: Group chosen at checkout
            stripe_id: Payment intent reference
            note: Operator note

        Returns:
            Dictionary containing created order details

        Raises:
            OrderValidationError: If order validation fails
            OrderProcessingError: If order creation fails
        """
        logger.info(
            "Creating order",
            store_id=str(store_id),
            item_count=len(items),
        )

        self._validate_order_items(items)

        created_at = utc_timestamp()
        order_items = [
            self._build_order_item(item, user_id, created_at) for item in items
        ]
        order_summary = self._calculate_summary(order_items, summary or {})
        order_number = self._generate_order_number()

        try:
            order = await self.repository.create_order(
                store_id=store_id,
                order_number=order_number,
                items=order_items,
                summary=order_summary,
                refund=empty_refund(),
                customer=customer,
                shipping_method=shipping_method,
                shipping_address=shipping_address,
                group=group,
                stripe_id=stripe_id,
                note=note,
            )
        except OrderCreationError as e:
            logger.error(
                "Order creation failed",
                store_id=str(store_id),
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to create order",
                store_id=str(store_id),
                error=str(e),
            ) from e

        logger.info(
            "Order created successfully",
            order_id=str(order.id),
            order_number=order_number,
            total=order_summary["total"],
        )
        return self._format_order_response(order)

    async def get_order(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> dict[str, Any]:
        """
        Get order details.

        Raises:
            OrderNotFoundError: If the order is not in the store
            OrderProcessingError: If retrieval fails
        """
        logger.debug("Retrieving order", order_id=str(order_id))

        try:
            order = await self._load_order(store_id, order_id)
        except OrderNotFoundError:
            raise
        except OrderRepositoryError as e:
            logger.error(
                "Failed to retrieve order",
                order_id=str(order_id),
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to retrieve order",
                order_id=str(order_id),
                error=str(e),
            ) from e

        return self._format_order_response(order)

    async def list_store_orders(
        self,
        store_id: uuid.UUID,
        status: Optional[OrderStatus] = None,
        skip: int = 0,
        limit: int = 20,
    ) -> dict[str, Any]:
        """
        Get a store's orders with pagination.

        Args:
            store_id: Store identifier
            status: Optional aggregate status filter
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            Dictionary containing orders and pagination info

        Raises:
            OrderProcessingError: If retrieval fails
        """
        logger.debug(
            "Retrieving store orders",
            store_id=str(store_id),
            status=status.value if status else None,
        )

        try:
            orders, total_count = await self.repository.list_store_orders(
                store_id=store_id,
                status=status,
                skip=skip,
                limit=limit,
            )
        except OrderRepositoryError as e:
            logger.error(
                "Failed to retrieve store orders",
                store_id=str(store_id),
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to retrieve store orders",
                store_id=str(store_id),
                error=str(e),
            ) from e

        return {
            "orders": [self._format_order_response(order) for order in orders],
            "total_count": total_count,
            "skip": skip,
            "limit": limit,
        }

    async def update_item_status(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
        item_id: str,
        user_id: str,
        status: Optional[OrderItemStatus] = None,
        return_to_inventory: bool = False,
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Move one item to a new status and reconcile the order status.

        Args:
            store_id: Store identifier
            order_id: Order identifier
            item_id: Identifier of the item within the order
            user_id: Acting user recorded in the item's status meta
            status: Explicit target; the next forward status when omitted
            return_to_inventory: Restock the item's quantity when it is
                cancelled by this update
            expected_version: Order version the caller last saw

        Returns:
            Dictionary containing updated order details

        Raises:
            OrderNotFoundError: If the order is not in the store
            OrderItemNotFoundError: If no item has ``item_id``
            ItemStatusTransitionError: If no target was given and the item
                cannot be advanced
            OrderConflictError: If the order changed since ``expected_version``
            OrderProcessingError: If the update fails
        """
        logger.info(
            "Updating order item status",
            order_id=str(order_id),
            item_id=item_id,
            target_status=status.value if status else None,
        )

        try:
            with log_performance(logger, "update_item_status", order_id=str(order_id)):
                order = await self._load_order(store_id, order_id, expected_version)

                item = order.find_item(item_id)
                if item is None:
                    raise OrderItemNotFoundError(
                        "Order item not found",
                        order_id=str(order_id),
                        item_id=item_id,
                    )

                current = OrderItemStatus(item["status"]["current"])
                try:
                    target = resolve_target_status(item, status)
                except StateTransitionError as e:
                    raise ItemStatusTransitionError(
                        str(e),
                        order_id=str(order_id),
                        item_id=item_id,
                        current_status=e.current_state.value,
                    ) from e

                updated_item = transition_item(item, target, user_id)
                items = [
                    updated_item if existing.get("id") == item_id else existing
                    for existing in order.items
                ]
                previous_status = order.order_status
                order.items = items
                order.order_status = derive_order_status(items, previous_status)

                # Save before restocking: the restock flush would otherwise
                # write the version-guarded order outside save()
                await self.repository.save(order)

                if (
                    target is OrderItemStatus.CANCELED
                    and return_to_inventory
                    and current.can_cancel()
                ):
                    await self._restock_items([item])

        except (OrderNotFoundError, OrderConflictError):
            raise
        except (OrderItemNotFoundError, ItemStatusTransitionError):
            raise
        except (OrderRepositoryError, InventoryRepositoryError) as e:
            logger.error(
                "Failed to update order item status",
                order_id=str(order_id),
                item_id=item_id,
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to update order item status",
                order_id=str(order_id),
                item_id=item_id,
                error=str(e),
            ) from e

        logger.info(
            "Order item status updated",
            order_id=str(order_id),
            item_id=item_id,
            from_status=current.value,
            to_status=target.value,
            order_status=order.order_status.value,
            previous_order_status=previous_status.value,
        )
        return self._format_order_response(order)

    async def fulfill_unfulfilled_items(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
        user_id: str,
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Move every ``Unfulfilled`` item of an order to ``Fulfilled``.

        Backordered items are left alone, so an order with backorders stays
        ``Unfulfilled``.

        Raises:
            OrderNotFoundError: If the order is not in the store
            OrderConflictError: If the order changed since ``expected_version``
            OrderProcessingError: If the update fails
        """
        logger.info("Fulfilling unfulfilled items", order_id=str(order_id))

        try:
            order = await self._load_order(store_id, order_id, expected_version)

            items, moved = advance_items(
                order.items,
                OrderItemStatus.UNFULFILLED,
                OrderItemStatus.FULFILLED,
                user_id,
            )
            if moved:
                order.items = items
                order.order_status = derive_order_status(items, order.order_status)
                await self.repository.save(order)

        except (OrderNotFoundError, OrderConflictError):
            raise
        except OrderRepositoryError as e:
            logger.error(
                "Failed to fulfill order items",
                order_id=str(order_id),
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to fulfill order items",
                order_id=str(order_id),
                error=str(e),
            ) from e

        logger.info(
            "Unfulfilled items fulfilled",
            order_id=str(order_id),
            moved=moved,
            order_status=order.order_status.value,
        )
        return self._format_order_response(order)

    async def cancel_order(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
        user_id: str,
        return_to_inventory: bool = True,
        expected_version: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Cancel a whole order and record a full refund.

        Items already ``Canceled`` or ``Shipped`` are untouched; every other
        item is cancelled with its quantity and item total zeroed. The money
        summary is zeroed except for the card processing fee, the refund is
        recorded as ``Full`` for the previous total, and the order status is
        set to ``Canceled`` directly.

        Args:
            store_id: Store identifier
            order_id: Order identifier
            user_id: Acting user recorded in the cancelled items' meta
            return_to_inventory: Restock the quantities cancelled here
            expected_version: Order version the caller last saw

        Raises:
            OrderNotFoundError: If the order is not in the store
            OrderConflictError: If the order changed since ``expected_version``
            OrderProcessingError: If the cancellation fails
        """
        logger.info(
            "Cancelling order",
            order_id=str(order_id),
            return_to_inventory=return_to_inventory,
        )

        try:
            order = await self._load_order(store_id, order_id, expected_version)

            updated_at = utc_timestamp()
            cancelled: list[dict[str, Any]] = []
            items: list[dict[str, Any]] = []
            for item in order.items:
                if OrderItemStatus(item["status"]["current"]).can_cancel():
                    cancelled.append(item)
                    item = transition_item(
                        item, OrderItemStatus.CANCELED, user_id, updated_at
                    )
                    item["quantity"] = 0
                    item["itemTotal"] = 0.0
                items.append(item)

            summary = dict(order.summary or {})
            refund_amount = float(summary.get("total", 0.0))
            for field in SUMMARY_ZEROED_ON_CANCEL:
                summary[field] = 0.0

            order.items = items
            order.summary = summary
            order.refund = {
                "status": RefundStatus.FULL.value,
                "amount": refund_amount,
            }
            order.order_status = OrderStatus.CANCELED

            await self.repository.save(order)

            if return_to_inventory:
                await self._restock_items(cancelled)

        except (OrderNotFoundError, OrderConflictError):
            raise
        except (OrderRepositoryError, InventoryRepositoryError) as e:
            logger.error(
                "Failed to cancel order",
                order_id=str(order_id),
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to cancel order",
                order_id=str(order_id),
                error=str(e),
            ) from e

        logger.info(
            "Order cancelled",
            order_id=str(order_id),
            cancelled_items=len(cancelled),
            refund_amount=refund_amount,
        )
        return self._format_order_response(order)

    async def update_note(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
        note: Optional[str],
    ) -> dict[str, Any]:
        """
        Replace the operator note on an order.

        Raises:
            OrderNotFoundError: If the order is not in the store
            OrderProcessingError: If the update fails
        """
        try:
            order = await self._load_order(store_id, order_id)
            order.note = note
            await self.repository.save(order)
        except (OrderNotFoundError, OrderConflictError):
            raise
        except OrderRepositoryError as e:
            logger.error(
                "Failed to update order note",
                order_id=str(order_id),
                error=str(e),
            )
            raise OrderProcessingError(
                "Failed to update order note",
                order_id=str(order_id),
                error=str(e),
            ) from e

        logger.info("Order note updated", order_id=str(order_id))
        return self._format_order_response(order)

    async def _load_order(
        self,
        store_id: uuid.UUID,
        order_id: uuid.UUID,
        expected_version: Optional[int] = None,
    ) -> Order:
        order = await self.repository.get_order(store_id, order_id)
        if order is None:
            raise OrderNotFoundError(
                "Order not found",
                order_id=str(order_id),
                store_id=str(store_id),
            )
        if expected_version is not None and order.version != expected_version:
            logger.warning(
                "Order version mismatch",
                order_id=str(order_id),
                expected_version=expected_version,
                version=order.version,
            )
            raise OrderConflictError(
                "Order was modified by another request",
                order_id=str(order_id),
                expected_version=expected_version,
                version=order.version,
            )
        return order

    async def _restock_items(self, items: list[dict[str, Any]]) -> None:
        """Add each item's quantity back to its inventory SKU."""
        for item in items:
            sku = item.get("sku") or {}
            quantity = int(item.get("quantity") or 0)
            if quantity <= 0:
                continue
            await self.inventory_repository.restock_sku(
                inventory_product_id=sku.get("inventoryProductId", ""),
                sku_id=sku.get("inventorySkuId", ""),
                quantity=quantity,
            )

    def _validate_order_items(self, items: list[dict[str, Any]]) -> None:
        """
        Validate item payloads of a new order.

        Raises:
            OrderValidationError: If validation fails
        """
        if not items:
            raise OrderValidationError("Order must contain at least one item")

        for idx, item in enumerate(items):
            if int(item.get("quantity", 0)) <= 0:
                raise OrderValidationError(
                    f"Item {idx} quantity must be positive",
                    item_index=idx,
                )
            if float(item.get("price", 0)) < 0:
                raise OrderValidationError(
                    f"Item {idx} price cannot be negative",
                    item_index=idx,
                )

    def _build_order_item(
        self,
        item: dict[str, Any],
        user_id: str,
        created_at: str,
    ) -> dict[str, Any]:
        price = float(item["price"])
        quantity = int(item["quantity"])
        return {
            "id": item.get("id") or uuid.uuid4().hex,
            "sku": item.get("sku") or {},
            "merchandiseCode": item.get("merchandiseCode", ""),
            "name": item.get("name", ""),
            "image": item.get("image", ""),
            "price": price,
            "quantity": quantity,
            "itemTotal": round(price * quantity, 2),
            "status": {
                "current": OrderItemStatus.UNFULFILLED.value,
                "meta": {
                    OrderItemStatus.UNFULFILLED.value: {
                        "user": user_id,
                        "updatedAt": created_at,
                    }
                },
            },
        }

    def _calculate_summary(
        self,
        items: list[dict[str, Any]],
        summary: dict[str, Any],
    ) -> dict[str, float]:
        """
        Fill in the order's money summary.

        Subtotal defaults to the sum of item totals and total to
        subtotal + shipping + sales tax.
        """
        subtotal = summary.get("subtotal")
        if subtotal is None:
            subtotal = sum(item["itemTotal"] for item in items)
        shipping = float(summary.get("shipping") or 0.0)
        sales_tax = float(summary.get("salesTax") or 0.0)
        total = summary.get("total")
        if total is None:
            total = float(subtotal) + shipping + sales_tax

        return {
            "subtotal": round(float(subtotal), 2),
            "shipping": round(shipping, 2),
            "salesTax": round(sales_tax, 2),
            "total": round(float(total), 2),
            "stripeFee": round(float(summary.get("stripeFee") or 0.0), 2),
        }

    def _generate_order_number(self) -> str:
        """
        Generate unique order number.

        Returns:
            Order number string, e.g. ORD-20260419153000-3FA2C1
        """
        prefix = get_settings().order_number_prefix
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        random_suffix = uuid.uuid4().hex[:6].upper()
        return f"{prefix}-{timestamp}-{random_suffix}"

    def _format_order_response(self, order: Order) -> dict[str, Any]:
        """
        Format order for response.

        Args:
            order: Order instance

        Returns:
            Dictionary containing formatted order data
        """
        return format_order(order)


def format_order(order: Order) -> dict[str, Any]:
    """Serialize an order row into the API response shape."""
    return {
        "id": str(order.id),
        "store_id": str(order.store_id),
        "order_number": order.order_number,
        "stripe_id": order.stripe_id,
        "customer": order.customer,
        "group": order.group,
        "shipping_method": order.shipping_method.value,
        "shipping_address": order.shipping_address,
        "summary": order.summary,
        "refund": order.refund,
        "items": order.items,
        "order_status": order.order_status.value,
        "note": order.note,
        "version": order.version,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "updated_at": order.updated_at.isoformat() if order.updated_at else None,
    }
