"""
Declarative base shared by the store, order and inventory tables.
"""

import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import DateTime, MetaData, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Matches the names used by the hand-written migrations
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(AsyncAttrs, DeclarativeBase):
    """Async-aware declarative base."""

    __abstract__ = True

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    def to_dict(self, exclude: Optional[set[str]] = None) -> dict[str, Any]:
        """
        Convert the row to a JSON-friendly dictionary.

        Datetimes become ISO-8601 strings and UUIDs become strings; JSONB
        documents (order items, summaries, SKUs) are returned as stored.

        Args:
            exclude: Column keys to leave out

        Returns:
            Dictionary keyed by column attribute name
        """
        exclude = exclude or set()
        result: dict[str, Any] = {}

        for column in self.__table__.columns:
            if column.key in exclude:
                continue
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, uuid.UUID):
                value = str(value)
            result[column.key] = value

        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)!r})>"


class BaseModel(Base):
    """
    Table base with a uuid4 primary key and database-maintained timestamps.

    Example:
        class Store(BaseModel):
            __tablename__ = "stores"

            name: Mapped[str] = mapped_column(String(255))
    """

    __abstract__ = True

    # Fetch server-side timestamps in the INSERT/UPDATE so they stay loaded
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
