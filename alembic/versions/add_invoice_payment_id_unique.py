"""Enforce one invoice per Razorpay payment.

Revision ID: add_invoice_payment_id_unique
Revises:
Create Date: 2026-10-12
"""
from alembic import op


# revision identifiers, used by Alembic.
revision = 'add_invoice_payment_id_unique'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Partial index: manually raised invoices carry no payment_id
    op.create_index(
        'uq_invoices_payment_id',
        'invoices',
        ['payment_id'],
        unique=True,
        postgresql_where="payment_id IS NOT NULL",
    )


def downgrade() -> None:
    op.drop_index('uq_invoices_payment_id', table_name='invoices')
