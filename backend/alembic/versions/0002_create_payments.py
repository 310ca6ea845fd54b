"""Create payments table

Revision ID: 0002_create_payments
Revises: 0001_create_accounts
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0002_create_payments'
down_revision: Union[str, None] = '0001_create_accounts'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the append-only payment audit table."""

    op.create_table(
        'payments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column(
            'account_id',
            sa.Uuid(),
            sa.ForeignKey('accounts.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('provider_payment_id', sa.String(255), nullable=False, unique=True),
        sa.Column('amount', sa.Integer, server_default='0', nullable=False),
        sa.Column('currency', sa.String(3), server_default='USD', nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('billing_period', sa.String(20)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_index('ix_payments_account_id', 'payments', ['account_id'])
    op.create_index('ix_payments_created_at', 'payments', ['created_at'])


def downgrade() -> None:
    """Drop payments table."""
    op.drop_index('ix_payments_created_at', table_name='payments')
    op.drop_index('ix_payments_account_id', table_name='payments')
    op.drop_table('payments')
