"""Initial purchasing and receiving schema

Revision ID: 001_initial_receiving_schema
Revises:
Create Date: 2026-10-19

Raw materials and stock ledger, purchase orders with their lines, goods
receipts (initial and replacement) with per-line inspection fields,
return-to-vendor entries and the purchasing activity timeline.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_receiving_schema'
down_revision = None
branch_labels = None
depends_on = None

QTY = sa.Numeric(18, 4)


def upgrade():
    """Create receiving tables."""

    op.create_table(
        'raw_materials',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False, server_default='EA'),
        sa.Column('current_stock', QTY, nullable=False, server_default='0'),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_raw_materials_id', 'raw_materials', ['id'])
    op.create_index('ix_raw_materials_code', 'raw_materials', ['code'], unique=True)

    op.create_table(
        'inventory_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(50), nullable=False),
        sa.Column('reference_type', sa.String(50), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('quantity', QTY, nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('transaction_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(['material_id'], ['raw_materials.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_inventory_transactions_id', 'inventory_transactions', ['id'])
    op.create_index('ix_inventory_transactions_material_id', 'inventory_transactions', ['material_id'])
    op.create_index('ix_inventory_transactions_reference_id', 'inventory_transactions', ['reference_id'])
    op.create_index('ix_inventory_transactions_transaction_date', 'inventory_transactions', ['transaction_date'])

    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(50), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=True),
        sa.Column('supplier_ref', sa.String(100), nullable=True),
        sa.Column('supplier_name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='ordered'),
        sa.Column('subtotal', QTY, nullable=False, server_default='0'),
        sa.Column('discount_percent', sa.Numeric(9, 4), nullable=False, server_default='0'),
        sa.Column('discount_amount', QTY, nullable=False, server_default='0'),
        sa.Column('tax_percent', sa.Numeric(9, 4), nullable=False, server_default='0'),
        sa.Column('tax_amount', QTY, nullable=False, server_default='0'),
        sa.Column('total_amount', QTY, nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('arrived_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('inventory_posted_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('discount_percent >= 0 AND discount_percent <= 100', name='ck_po_discount_pct'),
        sa.CheckConstraint('tax_percent >= 0', name='ck_po_tax_pct_nonneg'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_purchase_orders_id', 'purchase_orders', ['id'])
    op.create_index('ix_purchase_orders_po_number', 'purchase_orders', ['po_number'], unique=True)
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])

    op.create_table(
        'purchase_order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('line_number', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('material_name', sa.String(255), nullable=True),
        sa.Column('quantity_ordered', QTY, nullable=False),
        sa.Column('unit', sa.String(20), nullable=True),
        sa.Column('unit_price', QTY, nullable=False, server_default='0'),
        sa.Column('line_total', QTY, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['raw_materials.id']),
        sa.UniqueConstraint('purchase_order_id', 'material_id', name='uq_po_line_material'),
        sa.CheckConstraint('quantity_ordered > 0', name='ck_po_line_qty_pos'),
        sa.CheckConstraint('unit_price >= 0', name='ck_po_line_unit_price_nonneg'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_purchase_order_lines_id', 'purchase_order_lines', ['id'])

    op.create_table(
        'goods_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('receipt_number', sa.String(50), nullable=False),
        sa.Column('receipt_date', sa.Date(), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False, server_default='initial'),
        sa.Column('replacement_for_receipt_id', sa.Integer(), nullable=True),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['replacement_for_receipt_id'], ['goods_receipts.id']),
        sa.CheckConstraint("kind IN ('initial', 'replacement')", name='ck_gr_kind'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_goods_receipts_id', 'goods_receipts', ['id'])
    op.create_index('ix_goods_receipts_purchase_order_id', 'goods_receipts', ['purchase_order_id'])
    op.create_index('ix_goods_receipts_receipt_number', 'goods_receipts', ['receipt_number'], unique=True)

    op.create_table(
        'goods_receipt_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('material_name', sa.String(255), nullable=True),
        sa.Column('ordered_qty', QTY, nullable=False),
        sa.Column('received_qty', QTY, nullable=False),
        sa.Column('defective_qty', QTY, nullable=False, server_default='0'),
        sa.Column('accepted_qty', QTY, nullable=False),
        sa.Column('qc_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('qc_remarks', sa.Text(), nullable=True),
        sa.Column('qc_recorded_at', sa.DateTime(), nullable=True),
        sa.Column('qc_recorded_by', sa.String(100), nullable=True),
        sa.ForeignKeyConstraint(['receipt_id'], ['goods_receipts.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['material_id'], ['raw_materials.id']),
        sa.CheckConstraint('received_qty >= 0', name='ck_gr_line_received_nonneg'),
        sa.CheckConstraint('defective_qty >= 0', name='ck_gr_line_defective_nonneg'),
        sa.CheckConstraint('defective_qty <= received_qty', name='ck_gr_line_defective_le_received'),
        sa.CheckConstraint('accepted_qty + defective_qty = received_qty', name='ck_gr_line_accept_split'),
        sa.CheckConstraint("qc_status IN ('pending', 'completed')", name='ck_gr_line_qc_status'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_goods_receipt_lines_id', 'goods_receipt_lines', ['id'])
    op.create_index('ix_goods_receipt_lines_receipt_id', 'goods_receipt_lines', ['receipt_id'])
    op.create_index('ix_goods_receipt_lines_material_id', 'goods_receipt_lines', ['material_id'])

    op.create_table(
        'purchase_returns',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('receipt_line_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('quantity_returned', QTY, nullable=False),
        sa.Column('remarks', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['receipt_id'], ['goods_receipts.id']),
        sa.ForeignKeyConstraint(['receipt_line_id'], ['goods_receipt_lines.id']),
        sa.ForeignKeyConstraint(['material_id'], ['raw_materials.id']),
        sa.UniqueConstraint('receipt_line_id'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_purchase_returns_id', 'purchase_returns', ['id'])
    op.create_index('ix_purchase_returns_purchase_order_id', 'purchase_returns', ['purchase_order_id'])
    op.create_index('ix_purchase_returns_receipt_id', 'purchase_returns', ['receipt_id'])

    op.create_table(
        'purchasing_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('old_value', sa.String(100), nullable=True),
        sa.Column('new_value', sa.String(100), nullable=True),
        sa.Column('event_date', sa.Date(), nullable=True),
        sa.Column('metadata_key', sa.String(100), nullable=True),
        sa.Column('metadata_value', sa.String(255), nullable=True),
        sa.Column('actor', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_purchasing_events_id', 'purchasing_events', ['id'])
    op.create_index('ix_purchasing_events_purchase_order_id', 'purchasing_events', ['purchase_order_id'])
    op.create_index('ix_purchasing_events_event_type', 'purchasing_events', ['event_type'])
    op.create_index('ix_purchasing_events_event_date', 'purchasing_events', ['event_date'])
    op.create_index('ix_purchasing_events_created_at', 'purchasing_events', ['created_at'])


def downgrade():
    """Drop receiving tables."""
    op.drop_table('purchasing_events')
    op.drop_table('purchase_returns')
    op.drop_table('goods_receipt_lines')
    op.drop_table('goods_receipts')
    op.drop_table('purchase_order_lines')
    op.drop_table('purchase_orders')
    op.drop_table('inventory_transactions')
    op.drop_table('raw_materials')
