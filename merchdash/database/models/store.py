"""
Store model for time-boxed pop-up shops.

A store is open between ``open_date`` and ``close_date`` (or indefinitely
when ``permanently_open``) and owns the orders placed in it.
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import Boolean, DateTime, Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from merchdash.database.base import BaseModel
from merchdash.services.orders.enums import StoreStatus

if TYPE_CHECKING:
    from merchdash.database.models.order import Order


class Store(BaseModel):
    """
    Pop-up store with its schedule, shipping options and contact.

    Attributes:
        name: Display name
        open_date: When the store starts accepting orders
        close_date: When the store stops accepting orders (None if open-ended)
        permanently_open: Store never closes
        allow_direct_shipping: Orders may ship to the customer
        allow_store_pickup: Orders may be picked up
        primary_shipping_location: Address document for bulk shipments
        contact: Contact person document
        require_group_selection: Customers must choose a group
        group_term: Label for the group selector
        groups: Available group names
        show_on_stores_page: Listed on the public stores page
    """

    __tablename__ = "stores"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Store display name",
    )

    open_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the store opens",
    )

    close_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the store closes, NULL if open-ended",
    )

    permanently_open: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    allow_direct_shipping: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    allow_store_pickup: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    primary_shipping_location: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSONB,
        nullable=True,
        comment="Primary shipping address document",
    )

    contact: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="Store contact document",
    )

    require_group_selection: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    group_term: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    groups: Mapped[list[str]] = mapped_column(
        JSONB,
        nullable=False,
        default=list,
    )

    show_on_stores_page: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="store",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_stores_open_date", "open_date"),
        Index("ix_stores_close_date", "close_date"),
        {"comment": "Pop-up stores"},
    )

    def status_at(self, now: Optional[datetime] = None) -> StoreStatus:
        """
        Derive the store status at a point in time.

        Args:
            now: Reference time, defaults to the current UTC time

        Returns:
            UPCOMING before opening, CLOSED after a set close date (never for
            permanently open stores), OPEN otherwise
        """
        now = now or datetime.now(timezone.utc)
        if now < self.open_date:
            return StoreStatus.UPCOMING
        if (
            not self.permanently_open
            and self.close_date is not None
            and now > self.close_date
        ):
            return StoreStatus.CLOSED
        return StoreStatus.OPEN

    @property
    def status(self) -> StoreStatus:
        return self.status_at()
