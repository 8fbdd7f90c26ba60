"""
FastAPI dependencies for database sessions and services.

Routers receive services through these dependencies so each request builds
its services on the request-scoped session, and tests can swap them with
``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.core.config import get_settings
from merchdash.database.connection import get_db
from merchdash.services.inventory.service import InventoryService
from merchdash.services.orders.service import OrderService
from merchdash.services.stores.service import StoreService

DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


async def get_order_service(db: DatabaseSession) -> OrderService:
    """Order service bound to the request session."""
    return OrderService(db)


async def get_store_service(db: DatabaseSession) -> StoreService:
    """Store service bound to the request session."""
    return StoreService(db)


async def get_inventory_service(db: DatabaseSession) -> InventoryService:
    """Inventory service bound to the request session."""
    return InventoryService(db)


class Pagination:
    """Skip/limit query parameters with the configured default page size."""

    def __init__(
        self,
        skip: int = Query(0, ge=0, description="Number of records to skip"),
        limit: int | None = Query(
            None, ge=1, le=100, description="Maximum number of records to return"
        ),
    ):
        self.skip = skip
        self.limit = limit or get_settings().default_page_size


OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
StoreServiceDep = Annotated[StoreService, Depends(get_store_service)]
InventoryServiceDep = Annotated[InventoryService, Depends(get_inventory_service)]
PaginationParams = Annotated[Pagination, Depends()]
