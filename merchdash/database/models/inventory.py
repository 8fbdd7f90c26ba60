"""
Inventory product model holding per-SKU stock counts.
"""

from typing import Any, Optional

from sqlalchemy import String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from merchdash.database.base import BaseModel


class InventoryProduct(BaseModel):
    """
    Catalog product with its SKUs and on-hand inventory.

    ``skus`` is a list of documents shaped
    ``{id, color, size, inventory, active}``.
    """

    __tablename__ = "inventory_products"

    inventory_product_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="Business key referenced by order item SKUs",
    )

    merchandise_code: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    tag: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    skus: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    __table_args__ = ({"comment": "Inventory products and SKU stock"},)

    def find_sku(self, sku_id: str) -> Optional[dict[str, Any]]:
        """Return the SKU document with ``sku_id``, or None."""
        for sku in self.skus or []:
            if sku.get("id") == sku_id:
                return sku
        return None
