"""
Order model for customer purchases within a store.

An order is stored document-style: its line items, customer, shipping
address, money summary and refund record are JSON documents on the order
row. Item status changes replace the whole ``items`` document in one write,
guarded by the ``version`` column.
"""

import uuid
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from merchdash.database.base import BaseModel
from merchdash.services.orders.enums import OrderStatus, RefundStatus, ShippingMethod

if TYPE_CHECKING:
    from merchdash.database.models.store import Store


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


def empty_summary() -> dict[str, float]:
    """Money summary of an order with every amount at zero."""
    return {
        "subtotal": 0.0,
        "shipping": 0.0,
        "salesTax": 0.0,
        "total": 0.0,
        "stripeFee": 0.0,
    }


def empty_refund() -> dict[str, Any]:
    """Refund record of an order nothing has been refunded on."""
    return {"status": RefundStatus.NONE.value, "amount": 0.0}


class Order(BaseModel):
    """
    Customer order placed in a store.

    Attributes:
        store_id: Store the order belongs to
        order_number: Human-readable order number
        stripe_id: Payment intent reference
        customer: Customer document (firstName, lastName, email, phone)
        group: Group chosen at checkout
        shipping_method: How the order is delivered
        shipping_address: Address document
        summary: Money document (subtotal, shipping, salesTax, total, stripeFee)
        refund: Refund document (status, amount)
        items: Line item documents, each with a ``status`` sub-document
        order_status: Aggregate status derived from item statuses
        note: Free-form operator note
        version: Optimistic concurrency counter, bumped on every write
    """

    __tablename__ = "orders"

    store_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Store the order was placed in",
    )

    order_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="Human-readable order number",
    )

    stripe_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Payment intent reference",
    )

    customer: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
    )

    group: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    shipping_method: Mapped[ShippingMethod] = mapped_column(
        SQLEnum(
            ShippingMethod,
            name="shipping_method",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=ShippingMethod.NONE,
    )

    shipping_address: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=True,
    )

    summary: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=empty_summary,
    )

    refund: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=empty_refund,
    )

    items: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
        comment="Order item documents",
    )

    order_status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            length=32,
            values_callable=_enum_values,
        ),
        nullable=False,
        default=OrderStatus.UNFULFILLED,
        index=True,
        comment="Aggregate status derived from item statuses",
    )

    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Optimistic concurrency version",
    )

    store: Mapped["Store"] = relationship(
        "Store",
        back_populates="orders",
        lazy="raise",
    )

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}

    __table_args__ = (
        Index("ix_orders_store_status", "store_id", "order_status"),
        Index(
            "ix_orders_items_gin",
            "items",
            postgresql_using="gin",
            postgresql_ops={"items": "jsonb_path_ops"},
        ),
        {"comment": "Customer orders with embedded item documents"},
    )

    def find_item(self, item_id: str) -> Optional[dict[str, Any]]:
        """Return the item document with ``item_id``, or None."""
        for item in self.items or []:
            if item.get("id") == item_id:
                return item
        return None
