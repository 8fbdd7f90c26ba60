"""
API v1 package initialization.
"""

from merchdash.api.v1.inventory import router as inventory_router
from merchdash.api.v1.orders import router as orders_router
from merchdash.api.v1.stores import router as stores_router

__all__ = ["inventory_router", "orders_router", "stores_router"]
