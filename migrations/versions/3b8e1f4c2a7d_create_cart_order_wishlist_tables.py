"""create cart, order and wishlist tables with line / owner uniqueness

Revision ID: 3b8e1f4c2a7d
Revises:
Create Date: 2026-10-18 11:02:41.318204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3b8e1f4c2a7d'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MONEY = sa.Numeric(12, 2)


def _timestamps(updated=True):
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade():
    op.create_table(
        'product',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('public_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=True),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('sale_price', MONEY, nullable=True),
        sa.Column('pack_sizes', sa.JSON(), nullable=True),
        sa.Column('pack_prices', sa.JSON(), nullable=True),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('in_stock', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_product_public_id', 'product', ['public_id'], unique=True)
    op.create_index('ix_product_slug', 'product', ['slug'])

    op.create_table(
        'giftbox',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('image_url', sa.String(1024), nullable=True),
        sa.Column('contents', sa.JSON(), nullable=True),
        *_timestamps(updated=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'cart',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.String(64), nullable=False),
        *_timestamps(),
    )
    # one cart per owner, lazy creation races resolve on this index
    op.create_index('ix_cart_owner_id', 'cart', ['owner_id'], unique=True)

    op.create_table(
        'cartitem',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('cart_id', sa.Integer(), sa.ForeignKey('cart.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=True),
        sa.Column('gift_box_id', sa.Integer(), sa.ForeignKey('giftbox.id'), nullable=True),
        sa.Column('pack_size', sa.String(64), nullable=True),
        sa.Column('line_key', sa.String(160), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.UniqueConstraint('cart_id', 'line_key', name='uq_cart_item_line'),
        sa.CheckConstraint('(product_id IS NULL) <> (gift_box_id IS NULL)', name='ck_cart_item_one_reference'),
        sa.CheckConstraint('quantity >= 1', name='ck_cart_item_quantity_positive'),
    )
    op.create_index('ix_cartitem_cart_id', 'cartitem', ['cart_id'])
    op.create_index('ix_cartitem_product_id', 'cartitem', ['product_id'])
    op.create_index('ix_cartitem_gift_box_id', 'cartitem', ['gift_box_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('public_id', sa.Uuid(), nullable=False),
        sa.Column('owner_id', sa.String(64), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(32), nullable=False, server_default='pending'),
        sa.Column('total_amount', MONEY, nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=False),
        sa.Column('billing_address', sa.JSON(), nullable=True),
        sa.Column('payment_method', sa.String(32), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_orders_public_id', 'orders', ['public_id'], unique=True)
    op.create_index('ix_orders_owner_id', 'orders', ['owner_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])

    op.create_table(
        'orderitem',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id'), nullable=True),
        sa.Column('gift_box_id', sa.Integer(), sa.ForeignKey('giftbox.id'), nullable=True),
        sa.Column('product_name', sa.String(255), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('pack_size', sa.String(64), nullable=True),
        *_timestamps(updated=False),
        sa.CheckConstraint('(product_id IS NULL) <> (gift_box_id IS NULL)', name='ck_order_item_one_reference'),
    )
    op.create_index('ix_orderitem_order_id', 'orderitem', ['order_id'])

    op.create_table(
        'wishlistitem',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('product.id', ondelete='CASCADE'), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('user_id', 'product_id', name='uq_wishlist_user_product'),
    )
    op.create_index('ix_wishlistitem_user_id', 'wishlistitem', ['user_id'])


def downgrade():
    op.drop_table('wishlistitem')
    op.drop_table('orderitem')
    op.drop_table('orders')
    op.drop_table('cartitem')
    op.drop_table('cart')
    op.drop_table('giftbox')
    op.drop_table('product')
