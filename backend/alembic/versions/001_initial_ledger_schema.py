"""Initial ledger schema

Creates the accounting core (chart of accounts, system account map, fiscal
periods, journal, opening balances, document sequences), stock valuation
tables, warehouse documents and weighbridge tickets.

Revision ID: 001_initial_ledger
Revises:
Create Date: 2025-01-06
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # =========================================================================
    # 1. Chart of accounts and system account map
    # =========================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('account_class', sa.String(20), nullable=False),
        sa.Column('normal_side', sa.String(10), nullable=False),
        sa.Column('is_posting', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_cash_bank', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('tax_code', sa.String(20), nullable=False, server_default='NON_TAX'),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(10), nullable=False, server_default='AKTIF'),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['parent_id'], ['accounts.id'], name='fk_accounts_parent'),
        sa.UniqueConstraint('company_id', 'code', name='uq_accounts_company_code'),
    )
    op.create_index('ix_accounts_company_id', 'accounts', ['company_id'])
    op.create_index('ix_accounts_account_class', 'accounts', ['account_class'])
    op.create_index('ix_accounts_parent_id', 'accounts', ['parent_id'])
    op.create_index('ix_accounts_status', 'accounts', ['status'])

    op.create_table(
        'system_account_mappings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(40), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_system_account_mappings_account'),
        sa.UniqueConstraint('company_id', 'key', name='uq_system_account_mappings_company_key'),
    )
    op.create_index('ix_system_account_mappings_company_id', 'system_account_mappings', ['company_id'])
    op.create_index('ix_system_account_mappings_account_id', 'system_account_mappings', ['account_id'])

    # =========================================================================
    # 2. Fiscal periods, journal, opening balances
    # =========================================================================
    op.create_table(
        'fiscal_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month', sa.Integer(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_closed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('closed_by', sa.Integer(), nullable=True),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'year', 'month', name='uq_fiscal_periods_company_year_month'),
        sa.CheckConstraint('month >= 1 AND month <= 12', name='chk_fiscal_periods_month_range'),
    )
    op.create_index('ix_fiscal_periods_company_id', 'fiscal_periods', ['company_id'])
    op.create_index('ix_fiscal_periods_is_closed', 'fiscal_periods', ['is_closed'])

    op.create_table(
        'journal_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('entry_number', sa.String(30), nullable=False),  # "JE/2025/03/0007"
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('memo', sa.String(255), nullable=True),
        sa.Column('source_type', sa.String(50), nullable=False),
        sa.Column('source_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='POSTED'),
        sa.Column('reverses_entry_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('posted_by', sa.Integer(), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['reverses_entry_id'], ['journal_entries.id'], name='fk_journal_entries_reverses'),
        sa.UniqueConstraint('company_id', 'entry_number', name='uq_journal_entries_company_number'),
        sa.UniqueConstraint('reverses_entry_id', name='uq_journal_entries_reverses_entry_id'),
    )
    op.create_index('ix_journal_entries_company_id', 'journal_entries', ['company_id'])
    op.create_index('ix_journal_entries_entry_date', 'journal_entries', ['entry_date'])
    op.create_index('ix_journal_entries_source', 'journal_entries', ['source_type', 'source_id'])

    op.create_table(
        'journal_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entry_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('debit', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('credit', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('cost_center', sa.String(50), nullable=True),
        sa.Column('dept', sa.String(50), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('item_id', sa.Integer(), nullable=True),
        sa.Column('line_order', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['entry_id'], ['journal_entries.id'], name='fk_journal_lines_entry', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_journal_lines_account'),
        sa.CheckConstraint('debit >= 0 AND credit >= 0', name='chk_journal_lines_non_negative'),
        sa.CheckConstraint('NOT (debit > 0 AND credit > 0)', name='chk_journal_lines_one_side'),
    )
    op.create_index('ix_journal_lines_entry_id', 'journal_lines', ['entry_id'])
    op.create_index('ix_journal_lines_account_id', 'journal_lines', ['account_id'])

    op.create_table(
        'opening_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('period_id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('debit', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('credit', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('updated_by', sa.Integer(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['period_id'], ['fiscal_periods.id'], name='fk_opening_balances_period'),
        sa.ForeignKeyConstraint(['account_id'], ['accounts.id'], name='fk_opening_balances_account'),
        sa.UniqueConstraint('period_id', 'account_id', name='uq_opening_balances_period_account'),
    )
    op.create_index('ix_opening_balances_company_id', 'opening_balances', ['company_id'])
    op.create_index('ix_opening_balances_period_id', 'opening_balances', ['period_id'])
    op.create_index('ix_opening_balances_account_id', 'opening_balances', ['account_id'])

    op.create_table(
        'document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('prefix', sa.String(40), nullable=False),
        sa.Column('last_value', sa.Integer(), nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('company_id', 'prefix', name='uq_document_sequences_company_prefix'),
    )

    # =========================================================================
    # 3. Master data and stock valuation
    # =========================================================================
    op.create_table(
        'warehouses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_warehouses_company_id', 'warehouses', ['company_id'])

    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('sku', sa.String(50), nullable=False),
        sa.Column('name', sa.String(150), nullable=False),
        sa.Column('unit', sa.String(20), nullable=False, server_default='KG'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_items_company_id', 'items', ['company_id'])

    op.create_table(
        'stock_balances',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('bin_id', sa.Integer(), nullable=True),
        sa.Column('qty_on_hand', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('avg_cost', sa.Numeric(18, 6), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_stock_balances_item'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_stock_balances_warehouse'),
        sa.UniqueConstraint('item_id', 'warehouse_id', 'bin_id', name='uq_stock_balances_item_warehouse_bin'),
        sa.CheckConstraint('qty_on_hand >= 0', name='chk_stock_balances_qty_non_negative'),
    )
    op.create_index('ix_stock_balances_item_id', 'stock_balances', ['item_id'])
    op.create_index('ix_stock_balances_warehouse_id', 'stock_balances', ['warehouse_id'])
    # NULL bin_id rows are not covered by the unique constraint on PostgreSQL
    op.create_index(
        'uq_stock_balances_item_warehouse_no_bin',
        'stock_balances',
        ['item_id', 'warehouse_id'],
        unique=True,
        postgresql_where=sa.text('bin_id IS NULL'),
        sqlite_where=sa.text('bin_id IS NULL'),
    )

    op.create_table(
        'stock_ledger',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('bin_id', sa.Integer(), nullable=True),
        sa.Column('reference_type', sa.String(3), nullable=False),  # IN / OUT
        sa.Column('source_type', sa.String(50), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('qty_delta', sa.Numeric(18, 4), nullable=False),
        sa.Column('unit_cost', sa.Numeric(18, 6), nullable=False, server_default='0'),
        sa.Column('qty_after', sa.Numeric(18, 4), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_stock_ledger_item'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_stock_ledger_warehouse'),
    )
    op.create_index('ix_stock_ledger_item_warehouse', 'stock_ledger', ['item_id', 'warehouse_id'])
    op.create_index('ix_stock_ledger_reference', 'stock_ledger', ['source_type', 'reference_id'])

    # =========================================================================
    # 4. Goods issues / loans and goods receipts
    # =========================================================================
    op.create_table(
        'goods_issues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('doc_number', sa.String(40), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('purpose', sa.String(10), nullable=False, server_default='ISSUE'),
        sa.Column('expense_account_id', sa.Integer(), nullable=True),
        sa.Column('cost_center', sa.String(50), nullable=True),
        sa.Column('target_dept', sa.String(50), nullable=True),
        sa.Column('picker_name', sa.String(100), nullable=True),
        sa.Column('loan_receiver', sa.String(100), nullable=True),
        sa.Column('expected_return_at', sa.Date(), nullable=True),
        sa.Column('loan_notes', sa.Text(), nullable=True),
        sa.Column('is_loan_fully_returned', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('gl_status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('journal_entry_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_goods_issues_warehouse'),
        sa.ForeignKeyConstraint(['expense_account_id'], ['accounts.id'], name='fk_goods_issues_expense_account'),
        sa.ForeignKeyConstraint(['journal_entry_id'], ['journal_entries.id'], name='fk_goods_issues_journal_entry'),
        sa.UniqueConstraint('company_id', 'doc_number', name='uq_goods_issues_company_doc_number'),
    )
    op.create_index('ix_goods_issues_company_id', 'goods_issues', ['company_id'])
    op.create_index('ix_goods_issues_purpose', 'goods_issues', ['purpose'])
    op.create_index('ix_goods_issues_status', 'goods_issues', ['status'])

    op.create_table(
        'goods_issue_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('issue_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Numeric(18, 4), nullable=False),
        sa.Column('unit_cost', sa.Numeric(18, 6), nullable=True),
        sa.Column('qty_returned', sa.Numeric(18, 4), nullable=False, server_default='0'),
        sa.Column('note', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['issue_id'], ['goods_issues.id'], name='fk_goods_issue_lines_issue', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_goods_issue_lines_item'),
        sa.CheckConstraint('qty_returned <= qty', name='chk_goods_issue_lines_returned_le_qty'),
    )
    op.create_index('ix_goods_issue_lines_issue_id', 'goods_issue_lines', ['issue_id'])

    op.create_table(
        'goods_receipts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('doc_number', sa.String(40), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('source_type', sa.String(20), nullable=False, server_default='PURCHASE'),
        sa.Column('source_ref', sa.String(100), nullable=True),
        sa.Column('loan_issue_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('gl_status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('journal_entry_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_goods_receipts_warehouse'),
        sa.ForeignKeyConstraint(['loan_issue_id'], ['goods_issues.id'], name='fk_goods_receipts_loan_issue'),
        sa.ForeignKeyConstraint(['journal_entry_id'], ['journal_entries.id'], name='fk_goods_receipts_journal_entry'),
        sa.UniqueConstraint('company_id', 'doc_number', name='uq_goods_receipts_company_doc_number'),
    )
    op.create_index('ix_goods_receipts_company_id', 'goods_receipts', ['company_id'])
    op.create_index('ix_goods_receipts_loan_issue_id', 'goods_receipts', ['loan_issue_id'])
    op.create_index('ix_goods_receipts_status', 'goods_receipts', ['status'])

    op.create_table(
        'goods_receipt_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('receipt_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Numeric(18, 4), nullable=False),
        sa.Column('unit_cost', sa.Numeric(18, 6), nullable=False, server_default='0'),
        sa.Column('goods_issue_line_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['receipt_id'], ['goods_receipts.id'], name='fk_goods_receipt_lines_receipt', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_goods_receipt_lines_item'),
        sa.ForeignKeyConstraint(['goods_issue_line_id'], ['goods_issue_lines.id'], name='fk_goods_receipt_lines_issue_line'),
    )
    op.create_index('ix_goods_receipt_lines_receipt_id', 'goods_receipt_lines', ['receipt_id'])

    # =========================================================================
    # 5. Weighbridge tickets
    # =========================================================================
    op.create_table(
        'weighbridge_tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('company_id', sa.Integer(), nullable=False),
        sa.Column('doc_number', sa.String(40), nullable=False),
        sa.Column('no_seri', sa.String(50), nullable=False),
        sa.Column('vehicle_id', sa.Integer(), nullable=True),
        sa.Column('supplier_id', sa.Integer(), nullable=True),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('tanggal', sa.Date(), nullable=False),
        sa.Column('jam_masuk', sa.DateTime(), nullable=True),
        sa.Column('jam_keluar', sa.DateTime(), nullable=True),
        # PB Harian
        sa.Column('timbang1', sa.Numeric(18, 2), nullable=False),
        sa.Column('timbang2', sa.Numeric(18, 2), nullable=False),
        sa.Column('netto1', sa.Numeric(18, 2), nullable=False),
        sa.Column('pot_percent', sa.Numeric(9, 6), nullable=False, server_default='0'),
        sa.Column('pot_kg', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('berat_terima', sa.Numeric(18, 2), nullable=False),
        sa.Column('lokasi_kebun', sa.String(150), nullable=True),
        sa.Column('penimbang', sa.String(100), nullable=True),
        # Timbangan pricing
        sa.Column('harga_per_kg', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('pph_rate', sa.Numeric(9, 6), nullable=False, server_default='0'),
        sa.Column('upah_bongkar_per_kg', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('total', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('total_pph', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('total_upah_bongkar', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('total_pembayaran_supplier', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        sa.Column('gl_status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('journal_entry_id', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.Column('posted_by', sa.Integer(), nullable=True),
        sa.Column('posted_at', sa.DateTime(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_weighbridge_tickets_item'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], name='fk_weighbridge_tickets_warehouse'),
        sa.ForeignKeyConstraint(['journal_entry_id'], ['journal_entries.id'], name='fk_weighbridge_tickets_journal_entry'),
        sa.UniqueConstraint('company_id', 'no_seri', name='uq_weighbridge_tickets_company_no_seri'),
        sa.UniqueConstraint('company_id', 'doc_number', name='uq_weighbridge_tickets_company_doc_number'),
    )
    op.create_index('ix_weighbridge_tickets_company_id', 'weighbridge_tickets', ['company_id'])
    op.create_index('ix_weighbridge_tickets_tanggal', 'weighbridge_tickets', ['tanggal'])
    op.create_index('ix_weighbridge_tickets_status', 'weighbridge_tickets', ['status'])


def downgrade() -> None:
    op.drop_table('weighbridge_tickets')
    op.drop_table('goods_receipt_lines')
    op.drop_table('goods_receipts')
    op.drop_table('goods_issue_lines')
    op.drop_table('goods_issues')
    op.drop_table('stock_ledger')
    op.drop_table('stock_balances')
    op.drop_table('items')
    op.drop_table('warehouses')
    op.drop_table('document_sequences')
    op.drop_table('opening_balances')
    op.drop_table('journal_lines')
    op.drop_table('journal_entries')
    op.drop_table('fiscal_periods')
    op.drop_table('system_account_mappings')
    op.drop_table('accounts')
