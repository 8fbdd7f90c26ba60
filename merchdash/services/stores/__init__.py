"""Store operations."""
