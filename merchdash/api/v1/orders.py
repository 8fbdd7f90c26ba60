"""
Order API endpoints for a store's orders.

Implements order creation and reads, the item status update, whole-order
cancellation, fulfilling every unfulfilled item, and note editing. Service
errors are mapped to HTTP status codes: not found 404, validation and
invalid transitions 400, concurrent modification 409, anything else 500.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from merchdash.api.deps import OrderServiceDep, PaginationParams
from merchdash.core.logging import get_logger, set_user_id
from merchdash.schemas.orders import (
    FulfillUnfulfilledRequest,
    ItemStatusUpdateRequest,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderListResponse,
    OrderNoteUpdate,
    OrderResponse,
)
from merchdash.services.orders.enums import OrderStatus
from merchdash.services.orders.repository import (
    OrderConflictError,
    OrderNotFoundError,
)
from merchdash.services.orders.service import (
    ItemStatusTransitionError,
    OrderItemNotFoundError,
    OrderProcessingError,
    OrderValidationError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/stores/{store_id}/orders", tags=["orders"])


def order_http_error(exc: Exception) -> HTTPException:
    """Map an order service or repository error to an HTTP error."""
    if isinstance(exc, (OrderNotFoundError, OrderItemNotFoundError)):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        )
    if isinstance(exc, (OrderValidationError, ItemStatusTransitionError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    if isinstance(exc, OrderConflictError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Failed to process order",
    )


@router.post(
    "",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
)
async def create_order(
    store_id: UUID,
    request: OrderCreateRequest,
    order_service: OrderServiceDep,
) -> OrderResponse:
    """
    Place an order in a store with every item ``Unfulfilled``.

    Raises:
        HTTPException: 400 if validation fails, 500 if creation fails
    """
    set_user_id(request.user_id)

    try:
        order = await order_service.create_order(
            store_id=store_id,
            user_id=request.user_id,
            items=[item.to_document() for item in request.items],
            customer=request.customer.to_document(),
            summary=request.summary.to_document() if request.summary else None,
            shipping_method=request.shipping_method,
            shipping_address=request.shipping_address,
            group=request.group,
            stripe_id=request.stripe_id,
            note=request.note,
        )
    except (OrderValidationError, OrderProcessingError) as e:
        logger.warning(
            "Order creation rejected",
            store_id=str(store_id),
            error=str(e),
            context=e.context,
        )
        raise order_http_error(e) from e

    return OrderResponse(**order)


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List store orders",
)
async def list_orders(
    store_id: UUID,
    order_service: OrderServiceDep,
    pagination: PaginationParams,
    order_status: Optional[OrderStatus] = Query(
        None, description="Filter by aggregate order status"
    ),
) -> OrderListResponse:
    """
    List a store's orders, newest first.

    Raises:
        HTTPException: 500 if retrieval fails
    """
    try:
        result = await order_service.list_store_orders(
            store_id=store_id,
            status=order_status,
            skip=pagination.skip,
            limit=pagination.limit,
        )
    except OrderProcessingError as e:
        logger.error(
            "Failed to list orders",
            store_id=str(store_id),
            error=str(e),
        )
        raise order_http_error(e) from e

    return OrderListResponse(**result)


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
)
async def get_order(
    store_id: UUID,
    order_id: UUID,
    order_service: OrderServiceDep,
) -> OrderResponse:
    """
    Get one order of a store.

    Raises:
        HTTPException: 404 if not found, 500 if retrieval fails
    """
    try:
        order = await order_service.get_order(store_id, order_id)
    except (OrderNotFoundError, OrderProcessingError) as e:
        raise order_http_error(e) from e

    return OrderResponse(**order)


@router.post(
    "/{order_id}/items/{item_id}/status",
    response_model=OrderResponse,
    summary="Update order item status",
    description=(
        "Move one item to the given status, or to its next status when none "
        "is given, and re-derive the order status"
    ),
)
async def update_item_status(
    store_id: UUID,
    order_id: UUID,
    item_id: str,
    request: ItemStatusUpdateRequest,
    order_service: OrderServiceDep,
) -> OrderResponse:
    """
    Update one order item's status.

    Raises:
        HTTPException: 404 if the order or item is not found, 400 if the item
            cannot be advanced, 409 on concurrent modification
    """
    set_user_id(request.user_id)

    try:
        order = await order_service.update_item_status(
            store_id=store_id,
            order_id=order_id,
            item_id=item_id,
            user_id=request.user_id,
            status=request.status,
            return_to_inventory=request.return_to_inventory,
            expected_version=request.expected_version,
        )
    except (
        OrderNotFoundError,
        OrderItemNotFoundError,
        ItemStatusTransitionError,
        OrderConflictError,
        OrderProcessingError,
    ) as e:
        logger.warning(
            "Order item status update failed",
            order_id=str(order_id),
            item_id=item_id,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise order_http_error(e) from e

    return OrderResponse(**order)


@router.post(
    "/{order_id}/fulfill-unfulfilled",
    response_model=OrderResponse,
    summary="Fulfill all unfulfilled items",
)
async def fulfill_unfulfilled_items(
    store_id: UUID,
    order_id: UUID,
    request: FulfillUnfulfilledRequest,
    order_service: OrderServiceDep,
) -> OrderResponse:
    """
    Move every unfulfilled item of an order to fulfilled.

    Raises:
        HTTPException: 404 if not found, 409 on concurrent modification
    """
    set_user_id(request.user_id)

    try:
        order = await order_service.fulfill_unfulfilled_items(
            store_id=store_id,
            order_id=order_id,
            user_id=request.user_id,
            expected_version=request.expected_version,
        )
    except (OrderNotFoundError, OrderConflictError, OrderProcessingError) as e:
        logger.warning(
            "Fulfilling order items failed",
            order_id=str(order_id),
            error=str(e),
            error_type=type(e).__name__,
        )
        raise order_http_error(e) from e

    return OrderResponse(**order)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    summary="Cancel order",
    description=(
        "Cancel every item not already cancelled or shipped, zero the money "
        "summary and record a full refund"
    ),
)
async def cancel_order(
    store_id: UUID,
    order_id: UUID,
    request: OrderCancelRequest,
    order_service: OrderServiceDep,
) -> OrderResponse:
    """
    Cancel a whole order.

    Raises:
        HTTPException: 404 if not found, 409 on concurrent modification
    """
    set_user_id(request.user_id)

    try:
        order = await order_service.cancel_order(
            store_id=store_id,
            order_id=order_id,
            user_id=request.user_id,
            return_to_inventory=request.return_to_inventory,
            expected_version=request.expected_version,
        )
    except (OrderNotFoundError, OrderConflictError, OrderProcessingError) as e:
        logger.warning(
            "Order cancellation failed",
            order_id=str(order_id),
            error=str(e),
            error_type=type(e).__name__,
        )
        raise order_http_error(e) from e

    return OrderResponse(**order)


@router.put(
    "/{order_id}/note",
    response_model=OrderResponse,
    summary="Update order note",
)
async def update_note(
    store_id: UUID,
    order_id: UUID,
    request: OrderNoteUpdate,
    order_service: OrderServiceDep,
) -> OrderResponse:
    """
    Replace an order's operator note.

    Raises:
        HTTPException: 404 if not found
    """
    try:
        order = await order_service.update_note(store_id, order_id, request.note)
    except (OrderNotFoundError, OrderConflictError, OrderProcessingError) as e:
        raise order_http_error(e) from e

    return OrderResponse(**order)
