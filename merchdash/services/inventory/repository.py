"""
Inventory product data access repository.

Provides lookups by business key, creation, and SKU restocking used when
canceled order items are returned to inventory.
"""

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.core.logging import get_logger
from merchdash.database.models.inventory import InventoryProduct

logger = get_logger(__name__)


class InventoryRepositoryError(Exception):
    """Base exception for inventory repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class InventoryProductNotFoundError(InventoryRepositoryError):
    """Raised when an inventory product is not found."""

    pass


class InventoryProductExistsError(InventoryRepositoryError):
    """Raised when the business key is already taken."""

    pass


class InventoryRepository:
    """
    Repository for inventory product data access.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_inventory_product_id(
        self, inventory_product_id: str
    ) -> Optional[InventoryProduct]:
        """
        Get inventory product by its business key.

        Args:
            inventory_product_id: Business key referenced by order item SKUs

        Returns:
            InventoryProduct if found, None otherwise

        Raises:
            InventoryRepositoryError: If the query fails
        """
        try:
            stmt = select(InventoryProduct).where(
                InventoryProduct.inventory_product_id == inventory_product_id
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch inventory product",
                inventory_product_id=inventory_product_id,
                error=str(e),
            )
            raise InventoryRepositoryError(
                "Failed to fetch inventory product",
                inventory_product_id=inventory_product_id,
                error=str(e),
            ) from e

    async def create(self, **fields: Any) -> InventoryProduct:
        """
        Create an inventory product.

        Raises:
            InventoryProductExistsError: If the business key already exists
            InventoryRepositoryError: On any other database error
        """
        product = InventoryProduct(**fields)
        try:
            self.session.add(product)
            await self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "Inventory product already exists",
                inventory_product_id=fields.get("inventory_product_id"),
            )
            raise InventoryProductExistsError(
                "Inventory product already exists",
                inventory_product_id=fields.get("inventory_product_id"),
            ) from e
        except SQLAlchemyError as e:
            logger.error(
                "Failed to create inventory product",
                inventory_product_id=fields.get("inventory_product_id"),
                error=str(e),
            )
            raise InventoryRepositoryError(
                "Failed to create inventory product",
                error=str(e),
            ) from e

        logger.info(
            "Inventory product created",
            inventory_product_id=product.inventory_product_id,
            sku_count=len(product.skus or []),
        )
        return product

    async def restock_sku(
        self,
        inventory_product_id: str,
        sku_id: str,
        quantity: int,
    ) -> Optional[int]:
        """
        Add ``quantity`` to a SKU's on-hand inventory.

        A missing product or SKU is logged and skipped.

        Args:
            inventory_product_id: Business key of the product
            sku_id: SKU identifier within the product
            quantity: Units to add back

        Returns:
            New inventory count, or None if the product or SKU was not found

        Raises:
            InventoryRepositoryError: If the update fails
        """
        product = await self.get_by_inventory_product_id(inventory_product_id)
        if product is None or product.find_sku(sku_id) is None:
            logger.warning(
                "Inventory SKU not found, skipping restock",
                inventory_product_id=inventory_product_id,
                sku_id=sku_id,
                quantity=quantity,
            )
            return None

        new_inventory: Optional[int] = None
        updated_skus = []
        for sku in product.skus:
            if sku.get("id") == sku_id:
                new_inventory = int(sku.get("inventory", 0)) + quantity
                sku = {**sku, "inventory": new_inventory}
            updated_skus.append(sku)

        try:
            product.skus = updated_skus
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to restock inventory SKU",
                inventory_product_id=inventory_product_id,
                sku_id=sku_id,
                error=str(e),
            )
            raise InventoryRepositoryError(
                "Failed to restock inventory SKU",
                inventory_product_id=inventory_product_id,
                sku_id=sku_id,
                error=str(e),
            ) from e

        logger.info(
            "Inventory SKU restocked",
            inventory_product_id=inventory_product_id,
            sku_id=sku_id,
            quantity=quantity,
            inventory=new_inventory,
        )
        return new_inventory
