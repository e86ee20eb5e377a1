"""initial_market_schema

Revision ID: 0001_initial_market
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial_market'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role_enum = sa.Enum('customer', 'farmer', 'admin', name='market_user_role_enum')
product_category_enum = sa.Enum(
    'fruit', 'veggie', 'wheat', 'sugar_cane', 'lentils',
    name='market_product_category_enum',
)
order_status_enum = sa.Enum(
    'pending', 'processing', 'delivered', 'completed', 'cancelled',
    name='market_order_status_enum',
)


def upgrade() -> None:
    """Upgrade schema - users, stores, products, reviews, cart, orders."""

    op.create_table(
        'market_users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('role', user_role_enum, server_default='customer', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_users')),
        sa.UniqueConstraint('email', name=op.f('uq_market_users_email')),
    )

    op.create_table(
        'market_stores',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.Column('rating', sa.Numeric(precision=3, scale=2), server_default='0', nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ['owner_id'], ['market_users.id'],
            name=op.f('fk_market_stores_owner_id_market_users'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_stores')),
        # One store per farmer
        sa.UniqueConstraint('owner_id', name=op.f('uq_market_stores_owner_id')),
    )

    op.create_table(
        'market_reviews',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('rating', sa.Integer(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'rating >= 1 AND rating <= 5', name=op.f('ck_market_reviews_rating_range')
        ),
        sa.ForeignKeyConstraint(
            ['store_id'], ['market_stores.id'],
            name=op.f('fk_market_reviews_store_id_market_stores'),
            ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['market_users.id'],
            name=op.f('fk_market_reviews_user_id_market_users'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_reviews')),
        sa.UniqueConstraint('store_id', 'user_id', name='uq_market_reviews_store_user'),
    )
    op.create_index(
        op.f('ix_market_reviews_store_id'), 'market_reviews', ['store_id'], unique=False
    )

    op.create_table(
        'market_products',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.Column('category', product_category_enum, nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('quantity', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('price >= 0', name=op.f('ck_market_products_non_negative_price')),
        sa.CheckConstraint(
            'quantity >= 0', name=op.f('ck_market_products_non_negative_quantity')
        ),
        sa.ForeignKeyConstraint(
            ['store_id'], ['market_stores.id'],
            name=op.f('fk_market_products_store_id_market_stores'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_products')),
    )
    op.create_index(
        op.f('ix_market_products_store_id'), 'market_products', ['store_id'], unique=False
    )
    op.create_index(
        op.f('ix_market_products_name'), 'market_products', ['name'], unique=False
    )

    op.create_table(
        'market_cart_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'quantity > 0', name=op.f('ck_market_cart_items_positive_quantity')
        ),
        sa.ForeignKeyConstraint(
            ['customer_id'], ['market_users.id'],
            name=op.f('fk_market_cart_items_customer_id_market_users'),
            ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['product_id'], ['market_products.id'],
            name=op.f('fk_market_cart_items_product_id_market_products'),
            ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_cart_items')),
        sa.UniqueConstraint(
            'customer_id', 'product_id', name='uq_market_cart_items_customer_product'
        ),
    )
    op.create_index(
        op.f('ix_market_cart_items_customer_id'),
        'market_cart_items',
        ['customer_id'],
        unique=False,
    )

    op.create_table(
        'market_orders',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('customer_id', sa.Uuid(), nullable=False),
        sa.Column('status', order_status_enum, server_default='pending', nullable=False),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint(
            'total_amount >= 0', name=op.f('ck_market_orders_non_negative_total')
        ),
        sa.ForeignKeyConstraint(
            ['customer_id'], ['market_users.id'],
            name=op.f('fk_market_orders_customer_id_market_users'),
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_orders')),
    )
    op.create_index(
        op.f('ix_market_orders_customer_id'), 'market_orders', ['customer_id'], unique=False
    )
    op.create_index(
        'ix_market_orders_status_created_at',
        'market_orders',
        ['status', 'created_at'],
        unique=False,
    )

    op.create_table(
        'market_order_items',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('order_id', sa.Uuid(), nullable=False),
        sa.Column('product_id', sa.Uuid(), nullable=True),
        sa.Column('store_id', sa.Uuid(), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('line_total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.CheckConstraint(
            'quantity > 0', name=op.f('ck_market_order_items_positive_quantity')
        ),
        sa.ForeignKeyConstraint(
            ['order_id'], ['market_orders.id'],
            name=op.f('fk_market_order_items_order_id_market_orders'),
            ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['product_id'], ['market_products.id'],
            name=op.f('fk_market_order_items_product_id_market_products'),
            ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_market_order_items')),
    )
    op.create_index(
        op.f('ix_market_order_items_order_id'),
        'market_order_items',
        ['order_id'],
        unique=False,
    )
    op.create_index(
        op.f('ix_market_order_items_store_id'),
        'market_order_items',
        ['store_id'],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema - drop every market table and enum."""
    op.drop_index(op.f('ix_market_order_items_store_id'), table_name='market_order_items')
    op.drop_index(op.f('ix_market_order_items_order_id'), table_name='market_order_items')
    op.drop_table('market_order_items')
    op.drop_index('ix_market_orders_status_created_at', table_name='market_orders')
    op.drop_index(op.f('ix_market_orders_customer_id'), table_name='market_orders')
    op.drop_table('market_orders')
    op.drop_index(op.f('ix_market_cart_items_customer_id'), table_name='market_cart_items')
    op.drop_table('market_cart_items')
    op.drop_index(op.f('ix_market_products_name'), table_name='market_products')
    op.drop_index(op.f('ix_market_products_store_id'), table_name='market_products')
    op.drop_table('market_products')
    op.drop_index(op.f('ix_market_reviews_store_id'), table_name='market_reviews')
    op.drop_table('market_reviews')
    op.drop_table('market_stores')
    op.drop_table('market_users')

    bind = op.get_bind()
    order_status_enum.drop(bind, checkfirst=True)
    product_category_enum.drop(bind, checkfirst=True)
    user_role_enum.drop(bind, checkfirst=True)
