"""
Tests for inventory restocking and the inventory service.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from merchdash.database.models.inventory import InventoryProduct
from merchdash.services.inventory.repository import (
    InventoryProductExistsError,
    InventoryProductNotFoundError,
    InventoryRepository,
    InventoryRepositoryError,
)
from merchdash.services.inventory.service import InventoryService


@pytest.fixture
def product() -> InventoryProduct:
    """
    Create an inventory product with two SKUs.

    Returns:
        InventoryProduct: Transient product
    """
    return InventoryProduct(
        inventory_product_id="TEE-100",
        merchandise_code="TEE",
        name="Event Tee",
        tag="",
        skus=[
            {"id": "TEE-100-BLK-M", "color": {}, "size": {}, "inventory": 4, "active": True},
            {"id": "TEE-100-BLK-L", "color": {}, "size": {}, "inventory": 0, "active": True},
        ],
    )


def _returning(mock_session: AsyncMock, value) -> None:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    mock_session.execute.return_value = result


class TestRestockSku:
    """Tests for returning quantities to a SKU."""

    @pytest.mark.asyncio
    async def test_restock_adds_quantity(self, mock_session, product):
        _returning(mock_session, product)
        repository = InventoryRepository(mock_session)
        original_skus = product.skus

        inventory = await repository.restock_sku("TEE-100", "TEE-100-BLK-M", 3)

        assert inventory == 7
        assert product.find_sku("TEE-100-BLK-M")["inventory"] == 7
        assert product.find_sku("TEE-100-BLK-L")["inventory"] == 0
        assert product.skus is not original_skus
        mock_session.flush.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_product_is_skipped(self, mock_session):
        _returning(mock_session, None)
        repository = InventoryRepository(mock_session)

        assert await repository.restock_sku("NOPE", "NOPE-1", 3) is None
        mock_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_sku_is_skipped(self, mock_session, product):
        _returning(mock_session, product)
        repository = InventoryRepository(mock_session)

        assert await repository.restock_sku("TEE-100", "TEE-100-RED-S", 3) is None
        mock_session.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_flush_failure(self, mock_session, product):
        _returning(mock_session, product)
        mock_session.flush.side_effect = OperationalError("UPDATE", {}, Exception("gone"))
        repository = InventoryRepository(mock_session)

        with pytest.raises(InventoryRepositoryError):
            await repository.restock_sku("TEE-100", "TEE-100-BLK-M", 1)


class TestInventoryService:
    """Tests for inventory product create and read."""

    @pytest.mark.asyncio
    async def test_create_product(self, mock_session):
        _returning(mock_session, None)
        service = InventoryService(mock_session)

        result = await service.create_product(
            inventory_product_id="MUG-1",
            name="Mug",
            skus=[{"id": "MUG-1-W", "color": {}, "size": {}, "inventory": 5, "active": True}],
        )

        assert result["inventory_product_id"] == "MUG-1"
        assert result["skus"][0]["inventory"] == 5
        mock_session.add.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_duplicate(self, mock_session, product):
        _returning(mock_session, product)
        service = InventoryService(mock_session)

        with pytest.raises(InventoryProductExistsError):
            await service.create_product(
                inventory_product_id="TEE-100", name="Tee", skus=[]
            )

        mock_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_missing_product(self, mock_session):
        _returning(mock_session, None)
        service = InventoryService(mock_session)

        with pytest.raises(InventoryProductNotFoundError):
            await service.get_product("NOPE")
