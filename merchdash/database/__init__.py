"""
Database package.

- base: declarative base and mixins
- connection: async engine, sessions and health checks
- models: stores, orders and inventory products
"""
