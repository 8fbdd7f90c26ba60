"""
Order Pydantic schemas for API request/response validation.

Nested documents (customer, SKU reference, money summary) use camelCase keys
in storage; request models accept either the snake_case field name or the
camelCase alias and are dumped by alias before being persisted.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from merchdash.services.orders.enums import (
    OrderItemStatus,
    OrderStatus,
    ShippingMethod,
)


class DocumentModel(BaseModel):
    """Base for nested documents stored with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class CustomerRequest(DocumentModel):
    """Customer information captured at checkout."""

    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    phone: Optional[str] = Field(None, max_length=30)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v: str) -> str:
        """Validate email format."""
        if "@" not in v or "." not in v.split("@")[-1]:
            raise ValueError("Invalid email format")
        return v.lower()


class SkuReference(DocumentModel):
    """Which store product and inventory SKU an order item was bought as."""

    id: str = Field(..., min_length=1)
    store_product_id: str = Field("", description="Store product listing")
    inventory_product_id: str = Field(
        "", description="Inventory product business key"
    )
    inventory_sku_id: str = Field("", description="SKU within the product")
    size: dict[str, Any] = Field(default_factory=dict)
    color: dict[str, Any] = Field(default_factory=dict)


class OrderItemRequest(DocumentModel):
    """Line item of a new order."""

    id: Optional[str] = Field(None, description="Generated when omitted")
    sku: SkuReference
    merchandise_code: str = Field("", max_length=64)
    name: str = Field(..., min_length=1, max_length=255)
    image: str = Field("", max_length=1024)
    price: float = Field(..., ge=0, description="Unit price")
    quantity: int = Field(..., gt=0, le=10000)


class OrderSummaryRequest(DocumentModel):
    """Money amounts of a new order; missing subtotal/total are computed."""

    subtotal: Optional[float] = Field(None, ge=0)
    shipping: float = Field(0.0, ge=0)
    sales_tax: float = Field(0.0, ge=0)
    total: Optional[float] = Field(None, ge=0)
    stripe_fee: float = Field(0.0, ge=0)


class OrderCreateRequest(BaseModel):
    """Request to place an order in a store."""

    model_config = ConfigDict(validate_assignment=True)

    user_id: str = Field(..., min_length=1, description="Acting user")
    customer: CustomerRequest
    items: list[OrderItemRequest] = Field(..., min_length=1)
    summary: Optional[OrderSummaryRequest] = None
    shipping_method: ShippingMethod = ShippingMethod.NONE
    shipping_address: Optional[dict[str, Any]] = None
    group: str = Field("", max_length=255)
    stripe_id: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=2000)


def _parse_item_status(value: Any) -> Any:
    if isinstance(value, str):
        return OrderItemStatus.from_string(value)
    return value


class ItemStatusUpdateRequest(BaseModel):
    """Request to move one order item to a new status."""

    model_config = ConfigDict(validate_assignment=True)

    user_id: str = Field(..., min_length=1, description="Acting user")
    status: Optional[OrderItemStatus] = Field(
        None,
        description="Target status; the next forward status when omitted",
    )
    return_to_inventory: bool = Field(
        False,
        description="Restock the item quantity when cancelling it",
    )
    expected_version: Optional[int] = Field(
        None,
        ge=1,
        description="Order version the caller last saw",
    )

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> Any:
        """Accept status names case-insensitively."""
        return _parse_item_status(v)


class OrderCancelRequest(BaseModel):
    """Request to cancel a whole order."""

    user_id: str = Field(..., min_length=1, description="Acting user")
    return_to_inventory: bool = True
    expected_version: Optional[int] = Field(None, ge=1)


class FulfillUnfulfilledRequest(BaseModel):
    """Request to fulfill every unfulfilled item of an order."""

    user_id: str = Field(..., min_length=1, description="Acting user")
    expected_version: Optional[int] = Field(None, ge=1)


class OrderNoteUpdate(BaseModel):
    """Replace the operator note of an order."""

    note: Optional[str] = Field(None, max_length=2000)


class OrderResponse(BaseModel):
    """Order as returned by the API; items keep their stored layout."""

    id: str
    store_id: str
    order_number: str
    stripe_id: Optional[str] = None
    customer: dict[str, Any]
    group: str
    shipping_method: ShippingMethod
    shipping_address: Optional[dict[str, Any]] = None
    summary: dict[str, Any]
    refund: dict[str, Any]
    items: list[dict[str, Any]]
    order_status: OrderStatus
    note: Optional[str] = None
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderListResponse(BaseModel):
    """Paginated store orders."""

    orders: list[OrderResponse]
    total_count: int
    skip: int
    limit: int
