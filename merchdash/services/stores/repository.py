"""
Store data access repository.

Provides store creation, lookup, date-window filtered listing and per-store
order status counts.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from sqlalchemy import and_, func, not_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from merchdash.core.logging import get_logger
from merchdash.database.models.order import Order
from merchdash.database.models.store import Store
from merchdash.services.orders.enums import OrderStatus, StoreStatus

logger = get_logger(__name__)


class StoreRepositoryError(Exception):
    """Base exception for store repository errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.context = context


class StoreNotFoundError(StoreRepositoryError):
    """Raised when store is not found."""

    pass


def _status_condition(status: StoreStatus, now: datetime):
    """SQL condition matching ``Store.status_at(now) == status``."""
    opened = Store.open_date <= now
    past_close = and_(
        not_(Store.permanently_open),
        Store.close_date.is_not(None),
        Store.close_date < now,
    )
    if status is StoreStatus.UPCOMING:
        return Store.open_date > now
    if status is StoreStatus.CLOSED:
        return and_(opened, past_close)
    return and_(opened, not_(past_close))


class StoreRepository:
    """
    Repository for store data access operations.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_store(self, **fields: Any) -> Store:
        """
        Create a store.

        Raises:
            StoreRepositoryError: If the insert fails
        """
        store = Store(**fields)
        try:
            self.session.add(store)
            await self.session.flush()
        except SQLAlchemyError as e:
            logger.error(
                "Store creation failed",
                name=fields.get("name"),
                error=str(e),
            )
            raise StoreRepositoryError(
                "Store creation failed",
                name=fields.get("name"),
                error=str(e),
            ) from e

        logger.info("Store created", store_id=str(store.id), name=store.name)
        return store

    async def get_store_by_id(self, store_id: uuid.UUID) -> Optional[Store]:
        """
        Get store by ID.

        Returns:
            Store if found, None otherwise

        Raises:
            StoreRepositoryError: If the query fails
        """
        try:
            return await self.session.get(Store, store_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch store",
                store_id=str(store_id),
                error=str(e),
            )
            raise StoreRepositoryError(
                "Failed to fetch store",
                store_id=str(store_id),
                error=str(e),
            ) from e

    async def list_stores(
        self,
        status: Optional[StoreStatus] = None,
        skip: int = 0,
        limit: int = 20,
        now: Optional[datetime] = None,
    ) -> tuple[Sequence[Store], int]:
        """
        List stores, optionally filtered by derived status.

        Args:
            status: Only stores with this status at ``now``
            skip: Number of records to skip
            limit: Maximum number of records to return
            now: Reference time for the status filter

        Returns:
            Tuple of (stores ordered by open date, newest first; total count)

        Raises:
            StoreRepositoryError: If the query fails
        """
        now = now or datetime.now(timezone.utc)
        conditions = []
        if status is not None:
            conditions.append(_status_condition(status, now))

        stmt = (
            select(Store)
            .where(*conditions)
            .order_by(Store.open_date.desc())
            .offset(skip)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(Store).where(*conditions)

        try:
            result = await self.session.execute(stmt)
            count_result = await self.session.execute(count_stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list stores",
                status=status.value if status else None,
                error=str(e),
            )
            raise StoreRepositoryError(
                "Failed to list stores",
                error=str(e),
            ) from e

        return result.scalars().all(), count_result.scalar_one()

    async def count_orders_by_status(
        self, store_id: uuid.UUID
    ) -> dict[OrderStatus, int]:
        """
        Count a store's orders per aggregate order status.

        Returns:
            Mapping of every OrderStatus to its count (zero-filled)

        Raises:
            StoreRepositoryError: If the query fails
        """
        stmt = (
            select(Order.order_status, func.count())
            .where(Order.store_id == store_id)
            .group_by(Order.order_status)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to count store orders",
                store_id=str(store_id),
                error=str(e),
            )
            raise StoreRepositoryError(
                "Failed to count store orders",
                store_id=str(store_id),
                error=str(e),
            ) from e

        counts = {status: 0 for status in OrderStatus}
        for order_status, count in result.all():
            counts[OrderStatus(order_status)] = count
        return counts
