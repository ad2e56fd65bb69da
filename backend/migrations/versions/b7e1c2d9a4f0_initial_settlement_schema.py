"""Initial settlement schema: tenants, catalog, sales, payments, tills, revenue config, commission ledger

Creates every table of the settlement core:
1. Tenant root and providers
2. Catalog collaborators (services, products, bookings)
3. Sales, sale lines, payments and tenders
4. Stock movements and document sequences
5. Tills and till entries (one OPEN till per tenant via partial unique index)
6. Revenue configuration and overrides
7. Commission ledger and adjustment history

Revision ID: b7e1c2d9a4f0
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7e1c2d9a4f0'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    # ==========================================================================
    # STEP 1: Tenants and providers
    # ==========================================================================
    op.create_table('tenants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tenants_code', 'tenants', ['code'], unique=True)
    op.create_index('ix_tenants_is_active', 'tenants', ['is_active'])

    op.create_table('providers',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_providers_tenant_id', 'providers', ['tenant_id'])
    op.create_index('ix_providers_tenant_active', 'providers', ['tenant_id', 'is_active'])

    # ==========================================================================
    # STEP 2: Catalog collaborators
    # ==========================================================================
    op.create_table('catalog_services',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('discounted_price_cents', sa.Integer(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_catalog_services_tenant_id', 'catalog_services', ['tenant_id'])
    op.create_index('ix_catalog_services_tenant_active', 'catalog_services', ['tenant_id', 'is_active'])

    op.create_table('catalog_products',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('discounted_price_cents', sa.Integer(), nullable=True),
        sa.Column('stock_qty', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'sku', name='uq_catalog_products_tenant_sku')
    )
    op.create_index('ix_catalog_products_tenant_id', 'catalog_products', ['tenant_id'])
    op.create_index('ix_catalog_products_tenant_active', 'catalog_products', ['tenant_id', 'is_active'])

    op.create_table('bookings',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=True),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(length=255), nullable=True),
        sa.Column('scheduled_for', sa.DateTime(timezone=True), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('settled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['provider_id'], ['providers.id']),
        sa.ForeignKeyConstraint(['service_id'], ['catalog_services.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bookings_tenant_id', 'bookings', ['tenant_id'])
    op.create_index('ix_bookings_provider_id', 'bookings', ['provider_id'])
    op.create_index('ix_bookings_tenant_settled', 'bookings', ['tenant_id', 'settled'])

    # ==========================================================================
    # STEP 3: Sales and payments
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=64), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=True),
        sa.Column('tender_method', sa.String(length=32), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['provider_id'], ['providers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'document_number', name='uq_sales_tenant_docnum')
    )
    op.create_index('ix_sales_tenant_id', 'sales', ['tenant_id'])
    op.create_index('ix_sales_provider_id', 'sales', ['provider_id'])
    op.create_index('ix_sales_tender_method', 'sales', ['tender_method'])
    op.create_index('ix_sales_tenant_created', 'sales', ['tenant_id', 'created_at'])

    op.create_table('sale_lines',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('item_kind', sa.String(length=16), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_subtotal_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_sale_lines_sale_id', 'sale_lines', ['sale_id'])

    op.create_table('payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('booking_id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=True),
        sa.Column('gross_cents', sa.Integer(), nullable=False),
        sa.Column('fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('net_cents', sa.Integer(), nullable=False),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('recorded_by', sa.String(length=64), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id']),
        sa.ForeignKeyConstraint(['provider_id'], ['providers.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_id', name='uq_payments_booking')
    )
    op.create_index('ix_payments_tenant_id', 'payments', ['tenant_id'])
    op.create_index('ix_payments_provider_id', 'payments', ['provider_id'])
    op.create_index('ix_payments_created_at', 'payments', ['created_at'])
    op.create_index('ix_payments_tenant_created', 'payments', ['tenant_id', 'created_at'])

    op.create_table('payment_tenders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('payment_id', sa.Integer(), nullable=False),
        sa.Column('method', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('fee_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('net_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_payment_tenders_payment_id', 'payment_tenders', ['payment_id'])
    op.create_index('ix_payment_tenders_method', 'payment_tenders', ['method'])

    # ==========================================================================
    # STEP 4: Stock movements and document sequences
    # ==========================================================================
    op.create_table('stock_movements',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=8), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('quantity_after', sa.Integer(), nullable=False),
        sa.Column('reason', sa.String(length=32), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('sale_line_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['product_id'], ['catalog_products.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['sale_line_id'], ['sale_lines.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_line_id', 'movement_type', name='uq_stock_movements_line_type')
    )
    op.create_index('ix_stock_movements_tenant_id', 'stock_movements', ['tenant_id'])
    op.create_index('ix_stock_movements_product_id', 'stock_movements', ['product_id'])
    op.create_index('ix_stock_movements_sale_id', 'stock_movements', ['sale_id'])
    op.create_index('ix_stock_movements_occurred_at', 'stock_movements', ['occurred_at'])
    op.create_index('ix_stock_movements_tenant_product', 'stock_movements', ['tenant_id', 'product_id'])

    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'document_type', name='uq_doc_sequences_tenant_type')
    )
    op.create_index('ix_document_sequences_tenant_id', 'document_sequences', ['tenant_id'])
    op.create_index('ix_document_sequences_document_type', 'document_sequences', ['document_type'])

    # ==========================================================================
    # STEP 5: Tills
    # ==========================================================================
    op.create_table('tills',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('business_date', sa.Date(), nullable=False),
        sa.Column('shift', sa.String(length=16), nullable=False, server_default='FULL'),
        sa.Column('responsible', sa.String(length=120), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='OPEN'),
        sa.Column('opening_float_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counted_cents', sa.Integer(), nullable=True),
        sa.Column('denomination_breakdown', sa.JSON(), nullable=True),
        sa.Column('opened_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_by', sa.String(length=64), nullable=True),
        sa.Column('last_entry_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tills_tenant_id', 'tills', ['tenant_id'])
    op.create_index('ix_tills_status', 'tills', ['status'])
    op.create_index('ix_tills_opened_at', 'tills', ['opened_at'])
    op.create_index('ix_tills_tenant_business_date', 'tills', ['tenant_id', 'business_date'])
    # At most one OPEN till per tenant, across every service instance
    op.create_index(
        'uq_tills_one_open_per_tenant',
        'tills',
        ['tenant_id'],
        unique=True,
        sqlite_where=sa.text("status = 'OPEN'"),
        postgresql_where=sa.text("status = 'OPEN'"),
    )

    op.create_table('till_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('till_id', sa.Integer(), nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('entry_type', sa.String(length=8), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('concept', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('authorized_by', sa.String(length=64), nullable=True),
        sa.Column('recorded_by', sa.String(length=64), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.Column('source_key', sa.String(length=64), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['till_id'], ['tills.id']),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('till_id', 'source_key', name='uq_till_entries_source')
    )
    op.create_index('ix_till_entries_till_id', 'till_entries', ['till_id'])
    op.create_index('ix_till_entries_tenant_id', 'till_entries', ['tenant_id'])
    op.create_index('ix_till_entries_entry_type', 'till_entries', ['entry_type'])
    op.create_index('ix_till_entries_sale_id', 'till_entries', ['sale_id'])
    op.create_index('ix_till_entries_payment_id', 'till_entries', ['payment_id'])
    op.create_index('ix_till_entries_occurred_at', 'till_entries', ['occurred_at'])

    # ==========================================================================
    # STEP 6: Revenue configuration
    # ==========================================================================
    op.create_table('revenue_configs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('default_provider_pct', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('default_business_pct', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('tax_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('tax_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('withholding_enabled', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('withholding_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('allow_manual_adjustments', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', name='uq_revenue_configs_tenant'),
        sa.CheckConstraint('default_provider_pct + default_business_pct = 100', name='ck_revenue_configs_default_split')
    )

    op.create_table('revenue_overrides',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('config_id', sa.Integer(), nullable=False),
        sa.Column('scope', sa.String(length=16), nullable=False),
        sa.Column('target_id', sa.Integer(), nullable=False),
        sa.Column('provider_pct', sa.Integer(), nullable=False),
        sa.Column('business_pct', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['config_id'], ['revenue_configs.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('config_id', 'scope', 'target_id', name='uq_revenue_overrides_target'),
        sa.CheckConstraint('provider_pct + business_pct = 100', name='ck_revenue_overrides_split')
    )
    op.create_index('ix_revenue_overrides_config_id', 'revenue_overrides', ['config_id'])

    # ==========================================================================
    # STEP 7: Commission ledger
    # ==========================================================================
    op.create_table('commission_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('provider_id', sa.Integer(), nullable=False),
        sa.Column('service_id', sa.Integer(), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('sale_line_id', sa.Integer(), nullable=True),
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('gross_cents', sa.Integer(), nullable=False),
        sa.Column('auto_provider_cents', sa.Integer(), nullable=False),
        sa.Column('auto_business_cents', sa.Integer(), nullable=False),
        sa.Column('provider_cents', sa.Integer(), nullable=False),
        sa.Column('business_cents', sa.Integer(), nullable=False),
        sa.Column('provider_pct', sa.Integer(), nullable=False),
        sa.Column('business_pct', sa.Integer(), nullable=False),
        sa.Column('rate_source', sa.String(length=32), nullable=False),
        sa.Column('calculation_method', sa.String(length=16), nullable=False, server_default='PERCENTAGE'),
        sa.Column('tax_withheld_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('state', sa.String(length=16), nullable=False, server_default='PENDING'),
        sa.Column('approved_by', sa.String(length=64), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('paid_by', sa.String(length=64), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tender_method', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['tenant_id'], ['tenants.id']),
        sa.ForeignKeyConstraint(['provider_id'], ['providers.id']),
        sa.ForeignKeyConstraint(['service_id'], ['catalog_services.id']),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id']),
        sa.ForeignKeyConstraint(['sale_line_id'], ['sale_lines.id']),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id']),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_line_id', name='uq_commission_entries_sale_line'),
        sa.UniqueConstraint('booking_id', name='uq_commission_entries_booking')
    )
    op.create_index('ix_commission_entries_tenant_id', 'commission_entries', ['tenant_id'])
    op.create_index('ix_commission_entries_provider_id', 'commission_entries', ['provider_id'])
    op.create_index('ix_commission_entries_sale_id', 'commission_entries', ['sale_id'])
    op.create_index('ix_commission_entries_payment_id', 'commission_entries', ['payment_id'])
    op.create_index('ix_commission_entries_state', 'commission_entries', ['state'])
    op.create_index('ix_commission_entries_tenant_provider_state', 'commission_entries', ['tenant_id', 'provider_id', 'state'])
    op.create_index('ix_commission_entries_tenant_created', 'commission_entries', ['tenant_id', 'created_at'])

    op.create_table('commission_adjustments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('entry_id', sa.Integer(), nullable=False),
        sa.Column('previous_provider_cents', sa.Integer(), nullable=False),
        sa.Column('previous_business_cents', sa.Integer(), nullable=False),
        sa.Column('new_provider_cents', sa.Integer(), nullable=False),
        sa.Column('new_business_cents', sa.Integer(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('actor', sa.String(length=64), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(['entry_id'], ['commission_entries.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_commission_adjustments_entry_id', 'commission_adjustments', ['entry_id'])


def downgrade():
    op.drop_table('commission_adjustments')
    op.drop_table('commission_entries')
    op.drop_table('revenue_overrides')
    op.drop_table('revenue_configs')
    op.drop_table('till_entries')
    op.drop_index('uq_tills_one_open_per_tenant', table_name='tills')
    op.drop_table('tills')
    op.drop_table('document_sequences')
    op.drop_table('stock_movements')
    op.drop_table('payment_tenders')
    op.drop_table('payments')
    op.drop_table('sale_lines')
    op.drop_table('sales')
    op.drop_table('bookings')
    op.drop_table('catalog_products')
    op.drop_table('catalog_services')
    op.drop_table('providers')
    op.drop_table('tenants')
