"""
Alembic migration: Initial schema for stores, orders and inventory products.

Orders keep their line items, customer, address, money summary and refund as
JSONB documents, plus an integer version column for optimistic concurrency.

Revision ID: 001
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
        ),
    ]


def upgrade() -> None:
    """
    Create the stores, orders and inventory_products tables.
    """
    op.create_table(
        'stores',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('open_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('close_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('permanently_open', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('allow_direct_shipping', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('allow_store_pickup', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('primary_shipping_location', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column(
            'contact',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column('require_group_selection', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('group_term', sa.String(100), nullable=False, server_default=''),
        sa.Column(
            'groups',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column('show_on_stores_page', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        comment='Pop-up stores',
    )
    op.create_index('ix_stores_open_date', 'stores', ['open_date'])
    op.create_index('ix_stores_close_date', 'stores', ['close_date'])

    op.create_table(
        'orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            'store_id',
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey('stores.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('order_number', sa.String(50), nullable=False),
        sa.Column('stripe_id', sa.String(255), nullable=True),
        sa.Column(
            'customer',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column('group', sa.String(255), nullable=False, server_default=''),
        sa.Column('shipping_method', sa.String(32), nullable=False, server_default='None'),
        sa.Column('shipping_address', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('summary', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column('refund', postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column(
            'items',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment='Order item documents',
        ),
        sa.Column(
            'order_status',
            sa.String(32),
            nullable=False,
            server_default='Unfulfilled',
            comment='Aggregate status derived from item statuses',
        ),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column(
            'version',
            sa.Integer(),
            nullable=False,
            server_default='1',
            comment='Optimistic concurrency version',
        ),
        *_timestamps(),
        comment='Customer orders with embedded item documents',
    )
    op.create_index('ix_orders_store_id', 'orders', ['store_id'])
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_order_status', 'orders', ['order_status'])
    op.create_index('ix_orders_store_status', 'orders', ['store_id', 'order_status'])
    op.create_index(
        'ix_orders_items_gin',
        'orders',
        ['items'],
        postgresql_using='gin',
        postgresql_ops={'items': 'jsonb_path_ops'},
    )

    op.create_table(
        'inventory_products',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('inventory_product_id', sa.String(64), nullable=False),
        sa.Column('merchandise_code', sa.String(64), nullable=False, server_default=''),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tag', sa.String(100), nullable=False, server_default=''),
        sa.Column(
            'skus',
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        *_timestamps(),
        comment='Inventory products and SKU stock',
    )
    op.create_index(
        'ix_inventory_products_inventory_product_id',
        'inventory_products',
        ['inventory_product_id'],
        unique=True,
    )


def downgrade() -> None:
    """
    Drop every table created by this revision.
    """
    op.drop_table('inventory_products')
    op.drop_index('ix_orders_items_gin', table_name='orders')
    op.drop_table('orders')
    op.drop_table('stores')
