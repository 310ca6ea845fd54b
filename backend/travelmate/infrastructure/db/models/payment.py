"""
Payment Database Model

Append-only audit rows for completed checkouts, renewals and failed invoices.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from travelmate.infrastructure.db.models.base import utcnow


class PaymentModel(SQLModel, table=True):
    """Maps to the 'payments' table. Never updated after insert."""

    __tablename__ = "payments"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    account_id: UUID = Field(foreign_key="accounts.id", index=True, nullable=False)

    # Unique so a concurrently redelivered event cannot record twice
    provider_payment_id: str = Field(max_length=255, unique=True, nullable=False)

    amount: int = Field(default=0, description="Minor currency units")
    currency: str = Field(default="USD", max_length=3)
    status: str = Field(max_length=20)
    tier: str = Field(max_length=20)
    billing_period: Optional[str] = Field(default=None, max_length=20)

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
