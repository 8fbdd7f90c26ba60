"""Inventory stock operations."""
