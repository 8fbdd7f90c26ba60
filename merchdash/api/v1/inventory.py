"""
Inventory product API endpoints.
"""

from fastapi import APIRouter, HTTPException, status

from merchdash.api.deps import InventoryServiceDep
from merchdash.core.logging import get_logger
from merchdash.schemas.inventory import (
    InventoryProductCreate,
    InventoryProductResponse,
)
from merchdash.services.inventory.repository import (
    InventoryProductExistsError,
    InventoryProductNotFoundError,
    InventoryRepositoryError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/inventory-products", tags=["inventory"])


@router.post(
    "",
    response_model=InventoryProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create inventory product",
)
async def create_inventory_product(
    request: InventoryProductCreate,
    inventory_service: InventoryServiceDep,
) -> InventoryProductResponse:
    """
    Create an inventory product with its SKUs.

    Raises:
        HTTPException: 409 if the business key exists, 500 on failure
    """
    try:
        product = await inventory_service.create_product(
            inventory_product_id=request.inventory_product_id,
            name=request.name,
            skus=[sku.model_dump() for sku in request.skus],
            merchandise_code=request.merchandise_code,
            description=request.description,
            tag=request.tag,
        )
    except InventoryProductExistsError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(e),
        ) from e
    except InventoryRepositoryError as e:
        logger.error(
            "Inventory product creation failed",
            inventory_product_id=request.inventory_product_id,
            error=str(e),
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create inventory product",
        ) from e

    return InventoryProductResponse(**product)


@router.get(
    "/{inventory_product_id}",
    response_model=InventoryProductResponse,
    summary="Get inventory product",
)
async def get_inventory_product(
    inventory_product_id: str,
    inventory_service: InventoryServiceDep,
) -> InventoryProductResponse:
    """
    Get an inventory product by its business key.

    Raises:
        HTTPException: 404 if not found
    """
    try:
        product = await inventory_service.get_product(inventory_product_id)
    except InventoryProductNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        ) from e
    except InventoryRepositoryError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve inventory product",
        ) from e

    return InventoryProductResponse(**product)
