"""Create accounts table

Revision ID: 0001_create_accounts
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_create_accounts'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create accounts table with the subscription snapshot columns."""

    op.create_table(
        'accounts',
        sa.Column('id', sa.Uuid(), primary_key=True),

        # Identity
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(100)),

        # Subscription snapshot
        sa.Column('tier', sa.String(20), server_default='FREE', nullable=False),
        sa.Column('status', sa.String(20)),
        sa.Column('period_end', sa.DateTime(timezone=True)),

        # Stripe customer, set once
        sa.Column('provider_customer_id', sa.String(255)),

        # Ordering guard and write counter
        sa.Column('snapshot_event_at', sa.DateTime(timezone=True)),
        sa.Column('version', sa.Integer, server_default='0', nullable=False),

        # Timestamps
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),

        # FREE carries neither status nor period end
        sa.CheckConstraint(
            "tier <> 'FREE' OR (status IS NULL AND period_end IS NULL)",
            name='ck_accounts_free_has_no_snapshot',
        ),
    )

    op.create_index('ix_accounts_email', 'accounts', ['email'], unique=True)
    op.create_index(
        'ix_accounts_provider_customer_id',
        'accounts',
        ['provider_customer_id'],
        unique=True,
    )


def downgrade() -> None:
    """Drop accounts table."""
    op.drop_index('ix_accounts_provider_customer_id', table_name='accounts')
    op.drop_index('ix_accounts_email', table_name='accounts')
    op.drop_table('accounts')
