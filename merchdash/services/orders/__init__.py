"""Order status reconciliation and order operations."""
