"""Initial schema: tenants, api tokens, synced Shopify records, sync logs

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17

This migration adds:
1. Tenant and ApiToken (one tenant per connected Shopify store)
2. Customer, Order, OrderItem, Product keyed on (shopify id, tenant_id)
3. SyncLog (one row per sync invocation)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261017_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. TENANCY
    # ==========================================================================
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('shop_domain', sa.String(length=255), nullable=False),
        sa.Column('access_token', sa.String(length=255), nullable=False),
        sa.Column('api_version', sa.String(length=16), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_tenants'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('tenants', schema=None) as batch_op:
        batch_op.create_index('ix_tenants_shop_domain', ['shop_domain'], unique=True)
        batch_op.create_index('ix_tenants_is_active', ['is_active'], unique=False)

    op.create_table('api_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('label', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_api_tokens_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_api_tokens'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('api_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_api_tokens_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_api_tokens_token_hash', ['token_hash'], unique=True)

    # ==========================================================================
    # 2. SYNCED SHOPIFY RECORDS
    # ==========================================================================
    op.create_table('customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('shopify_customer_id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=128), nullable=True),
        sa.Column('last_name', sa.String(length=128), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('accepts_marketing', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('orders_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_spent', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('created_at_shopify', sa.DateTime(), nullable=True),
        sa.Column('updated_at_shopify', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_customers_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_customers'),
        sa.UniqueConstraint('shopify_customer_id', 'tenant_id', name='uq_customers_shopify_tenant'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_customers_tenant_email', ['tenant_id', 'email'], unique=False)

    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('shopify_order_id', sa.String(length=64), nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('financial_status', sa.String(length=32), nullable=True),
        sa.Column('fulfillment_status', sa.String(length=32), nullable=True),
        sa.Column('total_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('subtotal_price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('total_tax', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('total_discounts', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(length=8), nullable=True),
        sa.Column('is_draft', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('draft_status', sa.String(length=32), nullable=True),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('customer_shopify_id', sa.String(length=64), nullable=True),
        sa.Column('created_at_shopify', sa.DateTime(), nullable=True),
        sa.Column('updated_at_shopify', sa.DateTime(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_orders_tenant_id_tenants'),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], name='fk_orders_customer_id_customers'),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        sa.UniqueConstraint('shopify_order_id', 'tenant_id', name='uq_orders_shopify_tenant'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index('ix_orders_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_orders_tenant_customer_shopify', ['tenant_id', 'customer_shopify_id'], unique=False)
        batch_op.create_index('ix_orders_customer_id', ['customer_id'], unique=False)

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('shopify_line_id', sa.String(length=64), nullable=True),
        sa.Column('product_id', sa.String(length=64), nullable=True),
        sa.Column('variant_id', sa.String(length=64), nullable=True),
        sa.Column('title', sa.String(length=512), nullable=True),
        sa.Column('variant_title', sa.String(length=255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=False, server_default='0'),
        sa.Column('sku', sa.String(length=128), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name='fk_order_items_order_id_orders', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_order_items'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.create_index('ix_order_items_order_id', ['order_id'], unique=False)

    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('shopify_product_id', sa.String(length=64), nullable=False),
        sa.Column('title', sa.String(length=512), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        sa.Column('product_type', sa.String(length=255), nullable=True),
        sa.Column('tags', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=True),
        sa.Column('handle', sa.String(length=255), nullable=True),
        sa.Column('image_url', sa.String(length=1024), nullable=True),
        sa.Column('price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('compare_at_price', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('inventory_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at_shopify', sa.DateTime(), nullable=True),
        sa.Column('updated_at_shopify', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_products_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sa.UniqueConstraint('shopify_product_id', 'tenant_id', name='uq_products_shopify_tenant'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_tenant_id', ['tenant_id'], unique=False)

    # ==========================================================================
    # 3. SYNC LOGS
    # ==========================================================================
    op.create_table('sync_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('sync_type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='started'),
        sa.Column('trigger', sa.String(length=16), nullable=False, server_default='manual'),
        sa.Column('records_processed', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id'], name='fk_sync_logs_tenant_id_tenants'),
        sa.PrimaryKeyConstraint('id', name='pk_sync_logs'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sync_logs', schema=None) as batch_op:
        batch_op.create_index('ix_sync_logs_tenant_id', ['tenant_id'], unique=False)
        batch_op.create_index('ix_sync_logs_status', ['status'], unique=False)
        batch_op.create_index('ix_sync_logs_tenant_started', ['tenant_id', 'started_at'], unique=False)


def downgrade():
    op.drop_table('sync_logs')
    op.drop_table('products')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('customers')
    op.drop_table('api_tokens')
    op.drop_table('tenants')
