"""
Inventory product service.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.core.logging import get_logger
from merchdash.database.models.inventory import InventoryProduct
from merchdash.services.inventory.repository import (
    InventoryProductExistsError,
    InventoryProductNotFoundError,
    InventoryRepository,
)

logger = get_logger(__name__)


class InventoryService:
    """
    Create and read inventory products.

    Repository errors propagate unchanged; the API maps
    ``InventoryProductExistsError`` to 409 and
    ``InventoryProductNotFoundError`` to 404.
    """

    def __init__(self, session: AsyncSession):
        self.repository = InventoryRepository(session)

    async def create_product(
        self,
        inventory_product_id: str,
        name: str,
        skus: list[dict[str, Any]],
        merchandise_code: str = "",
        description: str | None = None,
        tag: str = "",
    ) -> dict[str, Any]:
        """
        Create an inventory product.

        Raises:
            InventoryProductExistsError: If the business key is taken
            InventoryRepositoryError: If the insert fails
        """
        existing = await self.repository.get_by_inventory_product_id(
            inventory_product_id
        )
        if existing is not None:
            raise InventoryProductExistsError(
                "Inventory product already exists",
                inventory_product_id=inventory_product_id,
            )

        product = await self.repository.create(
            inventory_product_id=inventory_product_id,
            merchandise_code=merchandise_code,
            name=name,
            description=description,
            tag=tag,
            skus=skus,
        )
        return self._format_product_response(product)

    async def get_product(self, inventory_product_id: str) -> dict[str, Any]:
        """
        Get an inventory product by business key.

        Raises:
            InventoryProductNotFoundError: If no product has the key
        """
        product = await self.repository.get_by_inventory_product_id(
            inventory_product_id
        )
        if product is None:
            raise InventoryProductNotFoundError(
                "Inventory product not found",
                inventory_product_id=inventory_product_id,
            )
        return self._format_product_response(product)

    def _format_product_response(self, product: InventoryProduct) -> dict[str, Any]:
        return product.to_dict()
