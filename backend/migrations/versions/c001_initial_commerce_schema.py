"""Initial commerce schema: tenants, identities, catalog, orders, carts, stock movements

MULTI-TENANT:
1. 'tenants' is the tenant root; 'users' and 'platform_admins' are global
2. Every other table carries tenant_id (FK tenants.id, indexed)
3. Business keys are unique per tenant: product SKU, category slug,
   order number, membership (tenant, user)

Revision ID: c001_initial
Revises:
Create Date: 2026-02-01
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c001_initial'
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(10, 2, asdecimal=False)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _tenant_id():
    return sa.Column('tenant_id', sa.Integer(), sa.ForeignKey('tenants.id'), nullable=False)


def upgrade():
    # ==========================================================================
    # Global identities and tenant root
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=16), nullable=True),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='customer'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('phone_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('tenants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('domain', sa.String(length=253), nullable=True),
        sa.Column('plan', sa.String(length=16), nullable=False, server_default='free'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('logo_url', sa.String(length=2048), nullable=True),
        sa.Column('website_url', sa.String(length=2048), nullable=True),
        sa.Column('subscription_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tenants_slug', 'tenants', ['slug'], unique=True)
    op.create_index('ix_tenants_domain', 'tenants', ['domain'], unique=True)
    op.create_index('ix_tenants_status', 'tenants', ['status'])

    op.create_table('platform_admins',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='SUPPORT'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
    )

    op.create_table('memberships',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='VIEWER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'user_id', name='uq_memberships_tenant_user'),
    )
    op.create_index('ix_memberships_tenant_id', 'memberships', ['tenant_id'])
    op.create_index('ix_memberships_user_id', 'memberships', ['user_id'])

    # ==========================================================================
    # Catalog
    # ==========================================================================
    op.create_table('categories',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.String(length=500), nullable=True),
        sa.Column('slug', sa.String(length=100), nullable=False),
        sa.Column('parent_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=True),
        sa.Column('image_url', sa.String(length=2048), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('seo', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'slug', name='uq_categories_tenant_slug'),
    )
    op.create_index('ix_categories_tenant_id', 'categories', ['tenant_id'])
    op.create_index('ix_categories_parent_id', 'categories', ['parent_id'])

    op.create_table('products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.String(length=2000), nullable=True),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('compare_at_price', MONEY, nullable=True),
        sa.Column('cost_price', MONEY, nullable=True),
        sa.Column('sku', sa.String(length=100), nullable=True),
        sa.Column('barcode', sa.String(length=100), nullable=True),
        sa.Column('weight', MONEY, nullable=True),
        sa.Column('dimensions', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='draft'),
        sa.Column('visibility', sa.String(length=16), nullable=False, server_default='public'),
        sa.Column('track_quantity', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('allow_backorder', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='5'),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('is_best_seller', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_new_arrival', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('seo', sa.JSON(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_products_tenant_sku'),
    )
    op.create_index('ix_products_tenant_id', 'products', ['tenant_id'])
    op.create_index('ix_products_tenant_status', 'products', ['tenant_id', 'status'])
    op.create_index('ix_products_tenant_name', 'products', ['tenant_id', 'name'])

    op.create_table('product_categories',
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id', ondelete='CASCADE'), nullable=False),
        sa.PrimaryKeyConstraint('product_id', 'category_id'),
    )

    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('quantity_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_stock_movements_tenant_id', 'stock_movements', ['tenant_id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_reference', 'stock_movements', ['reference'])
    op.create_index(
        'ix_stock_movements_tenant_product_created', 'stock_movements', ['tenant_id', 'product_id', 'created_at']
    )

    # ==========================================================================
    # Orders and carts
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('order_number', sa.String(length=50), nullable=False),
        sa.Column('customer_id', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='pending'),
        sa.Column('payment_status', sa.String(length=24), nullable=False, server_default='pending'),
        sa.Column('fulfillment_status', sa.String(length=16), nullable=False, server_default='unfulfilled'),
        sa.Column('subtotal', MONEY, nullable=False),
        sa.Column('tax_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('shipping_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('discount_amount', MONEY, nullable=False, server_default='0'),
        sa.Column('total', MONEY, nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('customer', sa.JSON(), nullable=False),
        sa.Column('shipping_address', sa.JSON(), nullable=False),
        sa.Column('billing_address', sa.JSON(), nullable=False),
        sa.Column('notes', sa.String(length=1000), nullable=True),
        sa.Column('shipped_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'order_number', name='uq_orders_tenant_number'),
    )
    op.create_index('ix_orders_tenant_id', 'orders', ['tenant_id'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_tenant_status_created', 'orders', ['tenant_id', 'status', 'created_at'])

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('variant_id', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('price', MONEY, nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('total', MONEY, nullable=False),
        sa.Column('image_url', sa.String(length=2048), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_tenant_id', 'order_items', ['tenant_id'])
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    op.create_table('carts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('customer_id', sa.String(length=64), nullable=True),
        sa.Column('session_id', sa.String(length=128), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_carts_tenant_id', 'carts', ['tenant_id'])
    op.create_index('ix_carts_tenant_session', 'carts', ['tenant_id', 'session_id'])
    op.create_index('ix_carts_tenant_customer', 'carts', ['tenant_id', 'customer_id'])

    op.create_table('cart_items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        _tenant_id(),
        sa.Column('cart_id', sa.Integer(), sa.ForeignKey('carts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), sa.ForeignKey('products.id'), nullable=False),
        sa.Column('variant_id', sa.String(length=64), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('added_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('cart_id', 'product_id', 'variant_id', name='uq_cart_items_line'),
    )
    op.create_index('ix_cart_items_tenant_id', 'cart_items', ['tenant_id'])
    op.create_index('ix_cart_items_cart_id', 'cart_items', ['cart_id'])


def downgrade():
    for table in (
        'cart_items', 'carts', 'order_items', 'orders', 'stock_movements',
        'product_categories', 'products', 'categories', 'memberships',
        'platform_admins', 'tenants', 'users',
    ):
        op.drop_table(table)
