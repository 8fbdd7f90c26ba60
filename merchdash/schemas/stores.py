"""
Store Pydantic schemas for API request/response validation.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from merchdash.schemas.orders import OrderResponse
from merchdash.services.orders.enums import StoreStatus


class StoreCreateRequest(BaseModel):
    """Request to create a pop-up store."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=255)
    open_date: datetime
    close_date: Optional[datetime] = None
    permanently_open: bool = False
    allow_direct_shipping: bool = False
    allow_store_pickup: bool = False
    primary_shipping_location: Optional[dict[str, Any]] = None
    contact: dict[str, Any] = Field(default_factory=dict)
    require_group_selection: bool = False
    group_term: str = Field("", max_length=100)
    groups: list[str] = Field(default_factory=list)
    show_on_stores_page: bool = True

    @model_validator(mode="after")
    def validate_dates(self) -> "StoreCreateRequest":
        """Ensure the close date does not precede the open date."""
        if self.close_date is not None and self.close_date < self.open_date:
            raise ValueError("close_date must not be before open_date")
        return self


class StoreResponse(BaseModel):
    """Store with its derived status."""

    id: str
    name: str
    open_date: datetime
    close_date: Optional[datetime] = None
    permanently_open: bool
    allow_direct_shipping: bool
    allow_store_pickup: bool
    primary_shipping_location: Optional[dict[str, Any]] = None
    contact: dict[str, Any]
    require_group_selection: bool
    group_term: str
    groups: list[str]
    show_on_stores_page: bool
    status: StoreStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StoreListResponse(BaseModel):
    """Paginated stores."""

    stores: list[StoreResponse]
    total_count: int
    skip: int
    limit: int


class ShipmentTriggerRequest(BaseModel):
    """Request to ship every fulfilled item in a store."""

    user_id: str = Field(..., min_length=1, description="Acting user")


class ShipmentTriggerResponse(BaseModel):
    """Result of a store shipment trigger."""

    store_id: str
    updated_order_count: int
    shipped_item_count: int
    orders: list[OrderResponse]
