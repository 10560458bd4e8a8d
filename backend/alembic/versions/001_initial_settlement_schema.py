"""initial settlement schema

Revision ID: 001_initial_settlement
Revises:
Create Date: 2026-10-19

Tables:
- customers, vendors (parties with opening balance)
- quotations (bookings, form_fields JSONB)
- payments (+ unallocated_amount)
- payment_allocations (payment → quotation)
- audit_logs
Enum types store the Python enum NAME (upper case).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001_initial_settlement'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# =========================================================================
# postgresql.ENUM objects (create_type=False); types are created explicitly
# =========================================================================
ENUMS = {
    'balance_type': ('DEBIT', 'CREDIT'),
    'party_type': ('CUSTOMER', 'VENDOR'),
    'quotation_type': ('FLIGHT', 'TRAIN', 'HOTEL', 'ACTIVITY'),
    'channel_type': ('B2B', 'B2C'),
    'quotation_status': ('DRAFT', 'CONFIRMED', 'CANCELLED'),
    'entry_type': ('CREDIT', 'DEBIT'),
    'amount_type': ('SELLING', 'COST'),
    'payment_record_status': ('PENDING', 'APPROVED', 'DENIED'),
    'audit_action': (
        'PAYMENT_CREATE', 'PAYMENT_UPDATE', 'PAYMENT_DELETE',
        'ALLOCATION_CREATE', 'ALLOCATION_BATCH',
    ),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _party_columns() -> list:
    return [
        sa.Column('opening_balance', sa.Numeric(18, 2), nullable=True, comment='Opening balance (absent = 0)'),
        sa.Column('balance_type', _enum('balance_type'), nullable=True, comment='Side of the opening balance'),
        sa.Column('is_deleted', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    ]


def upgrade() -> None:
    # =========================================================================
    # 1. Enum types
    # =========================================================================
    for name, values in ENUMS.items():
        labels = ", ".join(f"'{v}'" for v in values)
        op.execute(f"CREATE TYPE {name} AS ENUM ({labels})")

    # =========================================================================
    # 2. customers / vendors
    # =========================================================================
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Owning business ID'),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('company_name', sa.String(200), nullable=True),
        *_party_columns(),
        sa.CheckConstraint('opening_balance IS NULL OR opening_balance >= 0', name='ck_customer_opening_nonneg'),
    )
    op.create_index('ix_customer_business_created', 'customers', ['business_id', 'created_at'])

    op.create_table(
        'vendors',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Owning business ID'),
        sa.Column('company_name', sa.String(200), nullable=False),
        sa.Column('contact_person', sa.String(200), nullable=True),
        sa.Column('email', sa.String(200), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        *_party_columns(),
        sa.CheckConstraint('opening_balance IS NULL OR opening_balance >= 0', name='ck_vendor_opening_nonneg'),
    )
    op.create_index('ix_vendor_business_created', 'vendors', ['business_id', 'created_at'])

    # =========================================================================
    # 3. quotations
    # =========================================================================
    op.create_table(
        'quotations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Owning business ID'),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('customers.id', ondelete='RESTRICT'), nullable=True, comment='Customer ID'),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendors.id', ondelete='RESTRICT'), nullable=True, comment='Vendor ID'),
        sa.Column('quotation_type', _enum('quotation_type'), nullable=False),
        sa.Column('channel', _enum('channel_type'), nullable=False, server_default='B2C'),
        sa.Column('total_amount', sa.Numeric(18, 2), nullable=False, comment='Selling price (customer side)'),
        sa.Column('form_fields', postgresql.JSONB, nullable=False, server_default=sa.text("'{}'::jsonb"),
                  comment='Dynamic form fields (cost price keys live here)'),
        sa.Column('status', _enum('quotation_status'), nullable=False, server_default='DRAFT'),
        sa.Column('remarks', sa.Text, nullable=True),
        sa.Column('is_deleted', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
    )
    op.create_index('ix_quotation_business_customer', 'quotations', ['business_id', 'customer_id'])
    op.create_index('ix_quotation_business_vendor', 'quotations', ['business_id', 'vendor_id'])

    # =========================================================================
    # 4. payments
    # =========================================================================
    op.create_table(
        'payments',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Owning business ID'),
        sa.Column('party', _enum('party_type'), nullable=False, comment='customer/vendor'),
        sa.Column('party_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Customer or vendor ID'),
        sa.Column('bank_id', postgresql.UUID(as_uuid=True), nullable=True, comment='Bank account ID'),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False, comment='Amount (positive)'),
        sa.Column('currency', sa.String(3), nullable=True),
        sa.Column('entry_type', _enum('entry_type'), nullable=False),
        sa.Column('unallocated_amount', sa.Numeric(18, 2), nullable=False, comment='Amount not yet allocated'),
        sa.Column('payment_date', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('status', _enum('payment_record_status'), nullable=False, server_default='PENDING'),
        sa.Column('internal_notes', sa.Text, nullable=True),
        sa.Column('is_deleted', sa.Boolean, nullable=False, server_default='false'),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True, comment='Recorded by'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount_positive'),
        sa.CheckConstraint('unallocated_amount >= 0', name='ck_payment_unallocated_nonneg'),
        sa.CheckConstraint('unallocated_amount <= amount', name='ck_payment_unallocated_lte_amount'),
    )
    op.create_index('ix_payment_business_party', 'payments', ['business_id', 'party', 'party_id'])
    op.create_index('ix_payment_business_date', 'payments', ['business_id', 'payment_date'])
    op.create_index('ix_payment_business_status', 'payments', ['business_id', 'status'])

    # =========================================================================
    # 5. payment_allocations
    # =========================================================================
    op.create_table(
        'payment_allocations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('payment_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('payments.id', ondelete='CASCADE'), nullable=False, comment='Payment ID'),
        sa.Column('quotation_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('quotations.id', ondelete='RESTRICT'), nullable=False, comment='Quotation ID'),
        sa.Column('amount', sa.Numeric(18, 2), nullable=False, comment='Allocated amount'),
        sa.Column('amount_type', _enum('amount_type'), nullable=False),
        sa.Column('allocation_order', sa.Integer, nullable=False, server_default='1'),
        sa.Column('applied_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()')),
        sa.CheckConstraint('amount > 0', name='ck_pa_amount_positive'),
    )
    op.create_index('ix_pa_payment', 'payment_allocations', ['payment_id'])
    op.create_index('ix_pa_quotation', 'payment_allocations', ['quotation_id'])

    # =========================================================================
    # 6. audit_logs
    # =========================================================================
    op.create_table(
        'audit_logs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('business_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('action', _enum('audit_action'), nullable=False),
        sa.Column('target_type', sa.String(50), nullable=False),
        sa.Column('target_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('before_data', postgresql.JSONB, nullable=True),
        sa.Column('after_data', postgresql.JSONB, nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.text('NOW()'), index=True),
    )
    op.create_index('ix_audit_logs_business_created', 'audit_logs', ['business_id', 'created_at'])
    op.create_index('ix_audit_logs_target', 'audit_logs', ['target_type', 'target_id'])


def downgrade() -> None:
    # Tables (reverse dependency order)
    op.drop_table('audit_logs')
    op.drop_table('payment_allocations')
    op.drop_table('payments')
    op.drop_table('quotations')
    op.drop_table('vendors')
    op.drop_table('customers')

    for name in reversed(list(ENUMS)):
        op.execute(f"DROP TYPE IF EXISTS {name}")
