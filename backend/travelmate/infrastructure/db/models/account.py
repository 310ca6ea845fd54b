"""
Account Database Model

SQLModel table for user identity and the current subscription snapshot.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field

from travelmate.infrastructure.db.models.base import TimestampMixin, UUIDMixin


class AccountModel(UUIDMixin, TimestampMixin, table=True):
    """
    Accounts table. Maps to 'accounts' in PostgreSQL.

    The snapshot columns (tier, status, period_end) are only written through
    AccountRepository.apply_subscription_snapshot or the admin downgrade.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "tier <> 'FREE' OR (status IS NULL AND period_end IS NULL)",
            name="ck_accounts_free_has_no_snapshot",
        ),
    )

    # Identity
    email: str = Field(max_length=255, unique=True, index=True, nullable=False)
    password_hash: str = Field(max_length=255, nullable=False)
    name: Optional[str] = Field(default=None, max_length=100)

    # Subscription snapshot
    tier: str = Field(default="FREE", max_length=20, nullable=False)
    status: Optional[str] = Field(default=None, max_length=20)
    period_end: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    # Stripe customer, set once
    provider_customer_id: Optional[str] = Field(default=None, max_length=255, unique=True, index=True)

    # Ordering guard and write counter
    snapshot_event_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    version: int = Field(default=0, nullable=False)
