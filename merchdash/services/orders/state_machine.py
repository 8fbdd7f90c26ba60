"""Order status reconciliation and item status transitions.

The aggregate ``order_status`` of an order is derived from the statuses of
its items by an ordered list of rules; the first rule whose guard matches the
item tally wins. Item transitions never remove history: every status an item
reaches is recorded in ``status.meta`` with the acting user and a timestamp.

Everything here is pure. Callers persist the results.
"""

from collections import Counter
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional

from merchdash.services.orders.enums import (
    OrderItemStatus,
    OrderStatus,
    get_next_item_status,
)


class StateTransitionError(Exception):
    """Raised when an item cannot move to the requested status."""

    def __init__(
        self,
        message: str,
        current_state: OrderItemStatus,
        target_state: Optional[OrderItemStatus] = None,
        **context: Any,
    ):
        super().__init__(message)
        self.current_state = current_state
        self.target_state = target_state
        self.context = context


class StatusTally:
    """Count of order items per item status."""

    __slots__ = ("counts", "total")

    def __init__(self, items: Iterable[Mapping[str, Any]]):
        self.counts: Counter = Counter(
            OrderItemStatus(item["status"]["current"]) for item in items
        )
        self.total = sum(self.counts.values())

    def __getitem__(self, status: OrderItemStatus) -> int:
        return self.counts[status]

    @property
    def unfulfilled(self) -> int:
        return self.counts[OrderItemStatus.UNFULFILLED]

    @property
    def backordered(self) -> int:
        return self.counts[OrderItemStatus.BACKORDERED]

    @property
    def fulfilled(self) -> int:
        return self.counts[OrderItemStatus.FULFILLED]

    @property
    def shipped(self) -> int:
        return self.counts[OrderItemStatus.SHIPPED]

    @property
    def canceled(self) -> int:
        return self.counts[OrderItemStatus.CANCELED]

    def as_dict(self) -> dict[str, int]:
        """Counts keyed by item status value, zero-filled, plus ``total``."""
        totals = {status.value: self.counts[status] for status in OrderItemStatus}
        totals["total"] = self.total
        return totals

    def __repr__(self) -> str:
        return f"StatusTally({self.as_dict()!r})"


def _all_shipped_or_canceled(tally: StatusTally) -> bool:
    return tally.shipped > 0 and tally.shipped + tally.canceled == tally.total


def _all_canceled(tally: StatusTally) -> bool:
    return tally.canceled == tally.total


def _any_shipped(tally: StatusTally) -> bool:
    return tally.shipped > 0


def _any_unfulfilled_or_backordered(tally: StatusTally) -> bool:
    return tally.unfulfilled > 0 or tally.backordered > 0


def _all_fulfilled_or_canceled(tally: StatusTally) -> bool:
    return tally.fulfilled + tally.canceled == tally.total


# Order matters: shipment activity is checked before unfulfilled activity so
# a mix of shipped and unfulfilled items is PartiallyShipped, and full
# cancellation is checked before the fulfilled rule.
ORDER_STATUS_RULES: tuple[tuple[OrderStatus, Callable[[StatusTally], bool]], ...] = (
    (OrderStatus.SHIPPED, _all_shipped_or_canceled),
    (OrderStatus.CANCELED, _all_canceled),
    (OrderStatus.PARTIALLY_SHIPPED, _any_shipped),
    (OrderStatus.UNFULFILLED, _any_unfulfilled_or_backordered),
    (OrderStatus.FULFILLED, _all_fulfilled_or_canceled),
)


def derive_order_status(
    items: Iterable[Mapping[str, Any]],
    current_status: OrderStatus,
) -> OrderStatus:
    """Derive the aggregate order status from the full item list.

    Args:
        items: Complete post-mutation list of order item documents
        current_status: The order's status before the mutation

    Returns:
        Status of the first matching rule, or ``current_status`` when the
        list is empty or no rule matches
    """
    tally = StatusTally(items)
    if tally.total == 0:
        return current_status

    for status, guard in ORDER_STATUS_RULES:
        if guard(tally):
            return status

    return current_status


def utc_timestamp() -> str:
    """Current UTC time as an ISO-8601 string, the format stored in meta."""
    return datetime.now(timezone.utc).isoformat()


def transition_item(
    item: Mapping[str, Any],
    target: OrderItemStatus,
    user_id: str,
    updated_at: Optional[str] = None,
) -> dict[str, Any]:
    """Return a copy of ``item`` moved to ``target``.

    The previous meta entries are kept; only the entry for ``target`` is
    added (or overwritten when the status is reached again).

    Args:
        item: Order item document
        target: Status to move to
        user_id: Acting user recorded in meta
        updated_at: ISO timestamp, defaults to now

    Returns:
        New item document
    """
    previous = item.get("status") or {}
    meta = dict(previous.get("meta") or {})
    meta[target.value] = {
        "user": user_id,
        "updatedAt": updated_at or utc_timestamp(),
    }
    return {**item, "status": {"current": target.value, "meta": meta}}


def resolve_target_status(
    item: Mapping[str, Any],
    requested: Optional[OrderItemStatus] = None,
) -> OrderItemStatus:
    """Pick the status an item update should move to.

    Args:
        item: Order item document
        requested: Explicit target, if the caller supplied one

    Returns:
        ``requested`` when given, otherwise the next status in the forward
        progression

    Raises:
        StateTransitionError: If no target was given and the current status
            has no next status
    """
    current = OrderItemStatus(item["status"]["current"])
    if requested is not None:
        return requested

    next_status = get_next_item_status(current)
    if next_status is None:
        raise StateTransitionError(
            f"Item status {current.value} cannot be advanced automatically; "
            "an explicit target status is required",
            current_state=current,
            item_id=item.get("id"),
        )
    return next_status


def advance_items(
    items: Iterable[Mapping[str, Any]],
    from_status: OrderItemStatus,
    to_status: OrderItemStatus,
    user_id: str,
) -> tuple[list[dict[str, Any]], int]:
    """Move every item currently in ``from_status`` to ``to_status``.

    Items in any other status are returned unchanged. All moved items share
    one timestamp.

    Returns:
        Tuple of (new item list, number of items moved)
    """
    updated_at = utc_timestamp()
    result: list[dict[str, Any]] = []
    moved = 0
    for item in items:
        if item["status"]["current"] == from_status.value:
            result.append(transition_item(item, to_status, user_id, updated_at))
            moved += 1
        else:
            result.append(dict(item))
    return result, moved
