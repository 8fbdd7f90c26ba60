"""Merch dashboard backend: stores, orders and order fulfillment status."""

__version__ = "1.0.0"
