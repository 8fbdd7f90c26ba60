"""
Alembic environment for the merchdash schema.

The database URL always comes from application settings (``APP_DATABASE_URL``)
and is converted to its asyncpg form, so migrations run against the same
database the API uses.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import async_engine_from_config

from merchdash.core.config import get_settings
from merchdash.core.logging import get_logger
from merchdash.database.base import Base
from merchdash.database.connection import _convert_database_url_to_async

# Register every table on Base.metadata
from merchdash.database.models import InventoryProduct, Order, Store  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = get_logger(__name__)

database_url = _convert_database_url_to_async(get_settings().database_url)
config.set_main_option("sqlalchemy.url", database_url)

# Shared by offline SQL generation and online runs
CONFIGURE_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "compare_server_default": True,
}


def run_migrations_offline() -> None:
    """Write the migration SQL to stdout instead of executing it."""
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def _run_on_connection(connection: Connection) -> None:
    context.configure(
        connection=connection,
        transaction_per_migration=True,
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = async_engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_run_on_connection)
    finally:
        await engine.dispose()
    logger.info("Migrations applied")


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
