"""
Store API endpoints.

Store creation and listing, per-store order status totals, and the store
shipment trigger.
"""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status

from merchdash.api.deps import PaginationParams, StoreServiceDep
from merchdash.core.logging import get_logger, set_user_id
from merchdash.schemas.stores import (
    ShipmentTriggerRequest,
    ShipmentTriggerResponse,
    StoreCreateRequest,
    StoreListResponse,
    StoreResponse,
)
from merchdash.services.orders.enums import StoreStatus
from merchdash.services.orders.repository import OrderConflictError
from merchdash.services.stores.repository import StoreNotFoundError
from merchdash.services.stores.service import (
    StoreProcessingError,
    StoreValidationError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/stores", tags=["stores"])


@router.post(
    "",
    response_model=StoreResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create store",
)
async def create_store(
    request: StoreCreateRequest,
    store_service: StoreServiceDep,
) -> StoreResponse:
    """
    Create a pop-up store.

    Raises:
        HTTPException: 400 if the date window is invalid, 500 on failure
    """
    try:
        store = await store_service.create_store(**request.model_dump())
    except StoreValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    except StoreProcessingError as e:
        logger.error("Store creation failed", error=str(e), context=e.context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create store",
        ) from e

    return StoreResponse(**store)


@router.get(
    "",
    response_model=StoreListResponse,
    summary="List stores",
)
async def list_stores(
    store_service: StoreServiceDep,
    pagination: PaginationParams,
    store_status: Literal["all", "upcoming", "open", "closed"] = Query(
        "all", alias="status", description="Filter by derived store status"
    ),
) -> StoreListResponse:
    """
    List stores, newest open date first.

    Raises:
        HTTPException: 500 if retrieval fails
    """
    status_filter = None if store_status == "all" else StoreStatus(store_status)
    try:
        result = await store_service.list_stores(
            status=status_filter,
            skip=pagination.skip,
            limit=pagination.limit,
        )
    except StoreProcessingError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to list stores",
        ) from e

    return StoreListResponse(**result)


@router.get(
    "/{store_id}",
    response_model=StoreResponse,
    summary="Get store",
)
async def get_store(
    store_id: UUID,
    store_service: StoreServiceDep,
) -> StoreResponse:
    """
    Get store details.

    Raises:
        HTTPException: 404 if not found
    """
    try:
        store = await store_service.get_store(store_id)
    except StoreNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except StoreProcessingError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve store",
        ) from e

    return StoreResponse(**store)


@router.get(
    "/{store_id}/order-status-totals",
    response_model=dict[str, int],
    summary="Order counts per status",
)
async def get_order_status_totals(
    store_id: UUID,
    store_service: StoreServiceDep,
) -> dict[str, int]:
    """
    Count a store's orders per aggregate status, plus ``total``.

    Raises:
        HTTPException: 404 if the store is not found
    """
    try:
        return await store_service.get_order_status_totals(store_id)
    except StoreNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except StoreProcessingError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to count store orders",
        ) from e


@router.post(
    "/{store_id}/trigger-shipment",
    response_model=ShipmentTriggerResponse,
    summary="Ship all fulfilled items",
    description=(
        "Move every fulfilled item of every order in the store to shipped "
        "and re-derive each affected order's status"
    ),
)
async def trigger_shipment(
    store_id: UUID,
    request: ShipmentTriggerRequest,
    store_service: StoreServiceDep,
) -> ShipmentTriggerResponse:
    """
    Trigger a store-wide shipment.

    Raises:
        HTTPException: 404 if the store is not found, 409 if an order was
            modified concurrently, 500 on failure
    """
    set_user_id(request.user_id)

    try:
        result = await store_service.trigger_shipment(store_id, request.user_id)
    except StoreNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except OrderConflictError as e:
        logger.warning(
            "Store shipment conflict",
            store_id=str(store_id),
            context=e.context,
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
    except StoreProcessingError as e:
        logger.error(
            "Store shipment failed",
            store_id=str(store_id),
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to trigger shipment",
        ) from e

    return ShipmentTriggerResponse(**result)
