"""Order and order item status enums for fulfillment tracking.

Values are stored verbatim in order documents (``status.current``, the keys
of ``status.meta`` and ``order_status``), so the string values are part of
the persisted format and must not change.
"""

from enum import Enum
from typing import Optional


class OrderItemStatus(str, Enum):
    """Fulfillment status of a single order item.

    Forward progression:
    - UNFULFILLED -> FULFILLED -> SHIPPED

    BACKORDERED and CANCELED are only reached by an explicit target status.
    """

    UNFULFILLED = "Unfulfilled"
    BACKORDERED = "Backordered"
    FULFILLED = "Fulfilled"
    SHIPPED = "Shipped"
    CANCELED = "Canceled"

    @classmethod
    def from_string(cls, value: str) -> "OrderItemStatus":
        """Convert a case-insensitive string to OrderItemStatus.

        Args:
            value: String representation of status

        Returns:
            OrderItemStatus enum value

        Raises:
            ValueError: If value is not a valid item status
        """
        for status in cls:
            if status.value.lower() == value.strip().lower():
                return status
        valid_values = ", ".join(s.value for s in cls)
        raise ValueError(
            f"Invalid order item status: {value}. "
            f"Valid values are: {valid_values}"
        )

    def can_cancel(self) -> bool:
        """Check if a whole-order cancellation overwrites this status."""
        return self not in {OrderItemStatus.CANCELED, OrderItemStatus.SHIPPED}


class OrderStatus(str, Enum):
    """Aggregate order status derived from the statuses of its items.

    Set directly only at creation (UNFULFILLED) and by full cancellation
    (CANCELED); everything else comes from the status reducer.
    """

    UNFULFILLED = "Unfulfilled"
    FULFILLED = "Fulfilled"
    PARTIALLY_SHIPPED = "PartiallyShipped"
    SHIPPED = "Shipped"
    CANCELED = "Canceled"


class RefundStatus(str, Enum):
    """Refund recorded against an order."""

    NONE = "None"
    PARTIAL = "Partial"
    FULL = "Full"


class ShippingMethod(str, Enum):
    """How an order leaves the store."""

    PRIMARY = "Primary"
    DIRECT = "Direct"
    STORE_PICKUP = "Store Pickup"
    NONE = "None"


class StoreStatus(str, Enum):
    """Derived store status from its open/close window."""

    UPCOMING = "upcoming"
    OPEN = "open"
    CLOSED = "closed"


# Canonical forward progression used when no explicit target is supplied.
ITEM_STATUS_PROGRESSION: tuple[OrderItemStatus, ...] = (
    OrderItemStatus.UNFULFILLED,
    OrderItemStatus.FULFILLED,
    OrderItemStatus.SHIPPED,
)


def get_next_item_status(status: OrderItemStatus) -> Optional[OrderItemStatus]:
    """Get the next status in the forward progression.

    Args:
        status: Current item status

    Returns:
        Next status, or None when the status is last in the progression or
        outside it (BACKORDERED, CANCELED)
    """
    if status not in ITEM_STATUS_PROGRESSION:
        return None
    index = ITEM_STATUS_PROGRESSION.index(status)
    if index == len(ITEM_STATUS_PROGRESSION) - 1:
        return None
    return ITEM_STATUS_PROGRESSION[index + 1]
