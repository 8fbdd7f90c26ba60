"""
Core package for shared utilities.

Holds configuration and structured logging used by every other layer.
"""
