"""Payment verification columns: admin notes, tenant link, status check.

Revision ID: 002_payment_verification
Revises: 001_initial_schema
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op


revision = "002_payment_verification"
down_revision = "001_initial_schema"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.execute("""
        ALTER TABLE payments
            ADD COLUMN IF NOT EXISTS email TEXT,
            ADD COLUMN IF NOT EXISTS tenant_id UUID REFERENCES tenants(id) ON DELETE SET NULL,
            ADD COLUMN IF NOT EXISTS admin_notes TEXT,
            ADD COLUMN IF NOT EXISTS updated_at TIMESTAMPTZ
    """)
    op.execute("""
        ALTER TABLE payments
            ADD CONSTRAINT payments_status_check
            CHECK (status IN ('pending', 'success', 'rejected'))
    """)
    op.execute("CREATE INDEX IF NOT EXISTS idx_payments_tenant_id ON payments(tenant_id)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_tenants_phone ON tenants(phone)")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS idx_tenants_phone")
    op.execute("DROP INDEX IF EXISTS idx_payments_tenant_id")
    op.execute("ALTER TABLE payments DROP CONSTRAINT IF EXISTS payments_status_check")
    op.execute("""
        ALTER TABLE payments
            DROP COLUMN IF EXISTS updated_at,
            DROP COLUMN IF EXISTS admin_notes,
            DROP COLUMN IF EXISTS tenant_id,
            DROP COLUMN IF EXISTS email
    """)
