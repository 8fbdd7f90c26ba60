"""
Inventory product Pydantic schemas.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InventorySku(BaseModel):
    """One size/color variant of an inventory product."""

    id: str = Field(..., min_length=1, max_length=64)
    color: dict[str, Any] = Field(default_factory=dict)
    size: dict[str, Any] = Field(default_factory=dict)
    inventory: int = Field(0, ge=0, description="Units on hand")
    active: bool = True


class InventoryProductCreate(BaseModel):
    """Request to create an inventory product."""

    model_config = ConfigDict(str_strip_whitespace=True)

    inventory_product_id: str = Field(..., min_length=1, max_length=64)
    merchandise_code: str = Field("", max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    tag: str = Field("", max_length=100)
    skus: list[InventorySku] = Field(default_factory=list)

    @field_validator("skus")
    @classmethod
    def validate_unique_sku_ids(cls, v: list[InventorySku]) -> list[InventorySku]:
        """Reject duplicate SKU ids within one product."""
        ids = [sku.id for sku in v]
        if len(ids) != len(set(ids)):
            raise ValueError("SKU ids must be unique within a product")
        return v


class InventoryProductResponse(BaseModel):
    """Inventory product with SKU stock."""

    id: str
    inventory_product_id: str
    merchandise_code: str
    name: str
    description: Optional[str] = None
    tag: str
    skus: list[InventorySku]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
