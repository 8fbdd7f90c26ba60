"""SQLAlchemy models; importing this package registers every table."""

from merchdash.database.models.inventory import InventoryProduct
from merchdash.database.models.order import Order
from merchdash.database.models.store import Store

__all__ = ["InventoryProduct", "Order", "Store"]
