"""Initial storefront schema: catalog, inventory ledger, offers, carts, orders

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

This migration adds:
1. Products (single-table simple/variable), product models and colors
2. Inventory ledger with append-only stock history
3. Product offers (one active offer per color scope)
4. Cart items
5. Orders and order line snapshots
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. CATALOG
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category_id', sa.String(length=64), nullable=True),
        sa.Column('product_type', sa.String(length=16), nullable=False),
        sa.Column('model_name', sa.String(length=128), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('product_id'),
        sa.UniqueConstraint('sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_active', ['is_active'], unique=False)
        batch_op.create_index(batch_op.f('ix_products_category_id'), ['category_id'], unique=False)

    op.create_table('product_models',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('model_id', sa.String(length=36), nullable=False),
        sa.Column('product_pk', sa.Integer(), nullable=False),
        sa.Column('model_name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['product_pk'], ['products.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('model_id'),
        sa.UniqueConstraint('sku'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_models', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_models_product_pk'), ['product_pk'], unique=False)

    op.create_table('product_colors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('color_id', sa.String(length=36), nullable=False),
        sa.Column('product_pk', sa.Integer(), nullable=False),
        sa.Column('model_pk', sa.Integer(), nullable=True),
        sa.Column('color_name', sa.String(length=128), nullable=False),
        sa.Column('original_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('current_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('fragrances', sa.JSON(), nullable=False),
        sa.ForeignKeyConstraint(['product_pk'], ['products.id'], ),
        sa.ForeignKeyConstraint(['model_pk'], ['product_models.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('color_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_colors', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_colors_product_pk'), ['product_pk'], unique=False)
        batch_op.create_index(batch_op.f('ix_product_colors_model_pk'), ['model_pk'], unique=False)

    # ==========================================================================
    # 2. INVENTORY LEDGER
    # ==========================================================================
    op.create_table('inventory',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('inventory_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('model_name', sa.String(length=128), nullable=False),
        sa.Column('variable_model_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('variable_model_name', sa.String(length=128), nullable=True),
        sa.Column('color_id', sa.String(length=36), nullable=False),
        sa.Column('color_name', sa.String(length=128), nullable=False),
        sa.Column('fragrance', sa.String(length=128), nullable=False, server_default='Default'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('threshold', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('stock >= 0', name='ck_inventory_stock_non_negative'),
        sa.CheckConstraint('threshold >= 0', name='ck_inventory_threshold_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('inventory_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_product_id'), ['product_id'], unique=False)
        batch_op.create_index('ix_inventory_product_active', ['product_id', 'is_active'], unique=False)
        batch_op.create_index(
            'uq_inventory_active_variant',
            ['product_id', 'variable_model_id', 'color_id', 'fragrance'],
            unique=True,
            sqlite_where=sa.text('is_active = 1'),
            postgresql_where=sa.text('is_active'),
        )

    op.create_table('stock_history',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('history_id', sa.String(length=36), nullable=False),
        sa.Column('inventory_pk', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('previous_stock', sa.Integer(), nullable=False),
        sa.Column('new_stock', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('notes', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('added_by', sa.String(length=128), nullable=False, server_default='admin'),
        sa.Column('date', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['inventory_pk'], ['inventory.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('history_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('stock_history', schema=None) as batch_op:
        batch_op.create_index('ix_stock_history_inventory_date', ['inventory_pk', 'date'], unique=False)

    # ==========================================================================
    # 3. OFFERS
    # ==========================================================================
    op.create_table('product_offers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('offer_id', sa.String(length=36), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('color_id', sa.String(length=36), nullable=False),
        sa.Column('color_name', sa.String(length=128), nullable=False),
        sa.Column('model_name', sa.String(length=128), nullable=False),
        sa.Column('variable_model_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('offer_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('offer_label', sa.String(length=128), nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            'offer_percentage >= 0 AND offer_percentage <= 100',
            name='ck_product_offers_percentage_range',
        ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('offer_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('product_offers', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_product_offers_product_id'), ['product_id'], unique=False)
        batch_op.create_index(
            'uq_product_offers_active_scope',
            ['product_id', 'variable_model_id', 'color_id'],
            unique=True,
            sqlite_where=sa.text('is_active = 1'),
            postgresql_where=sa.text('is_active'),
        )

    # ==========================================================================
    # 4. CART
    # ==========================================================================
    op.create_table('cart_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('selected_model_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('selected_model_name', sa.String(length=128), nullable=False),
        sa.Column('selected_color_id', sa.String(length=36), nullable=False),
        sa.Column('selected_color_name', sa.String(length=128), nullable=False),
        sa.Column('selected_fragrance', sa.String(length=128), nullable=False, server_default='Default'),
        sa.Column('selected_size', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('final_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('quantity >= 1 AND quantity <= 99', name='ck_cart_items_quantity_range'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('cart_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_cart_items_user_id'), ['user_id'], unique=False)

    # ==========================================================================
    # 5. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.String(length=40), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('checkout_mode', sa.String(length=16), nullable=False),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_savings', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('shipping', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('tax', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('tax_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('total', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('delivery_address', sa.JSON(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        sa.Column('transaction_id', sa.String(length=128), nullable=True),
        sa.Column('paid_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('placed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('returned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('estimated_delivery', sa.DateTime(timezone=True), nullable=False),
        sa.Column('order_status', sa.String(length=16), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_orders_user_id'), ['user_id'], unique=False)
        batch_op.create_index('ix_orders_user_created', ['user_id', 'created_at'], unique=False)
        batch_op.create_index('ix_orders_status', ['order_status'], unique=False)

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_pk', sa.Integer(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.String(length=36), nullable=False),
        sa.Column('product_name', sa.String(length=255), nullable=False),
        sa.Column('color_id', sa.String(length=36), nullable=False),
        sa.Column('color_name', sa.String(length=128), nullable=False),
        sa.Column('model_id', sa.String(length=36), nullable=False, server_default=''),
        sa.Column('model_name', sa.String(length=128), nullable=False),
        sa.Column('fragrance', sa.String(length=128), nullable=False, server_default='Default'),
        sa.Column('size', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('offer_percentage', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('offer_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('saved_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('offer_id', sa.String(length=36), nullable=True),
        sa.Column('offer_label', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('purchased_from_stock', sa.Integer(), nullable=False),
        sa.Column('inventory_id', sa.String(length=36), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(['order_pk'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_pk', 'line_number', name='uq_order_items_order_line'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_order_items_order_pk'), ['order_pk'], unique=False)
        batch_op.create_index('ix_order_items_product', ['product_id'], unique=False)


def downgrade():
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('product_offers')
    op.drop_table('stock_history')
    op.drop_table('inventory')
    op.drop_table('product_colors')
    op.drop_table('product_models')
    op.drop_table('products')
