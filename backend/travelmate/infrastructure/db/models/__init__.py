"""
SQLModel ORM Models for TravelMate

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from travelmate.infrastructure.db.models.base import (
    TimestampMixin,
    UUIDMixin,
    ensure_utc,
    utcnow,
)
from travelmate.infrastructure.db.models.account import AccountModel
from travelmate.infrastructure.db.models.payment import PaymentModel
from travelmate.infrastructure.db.models.processed_event import ProcessedWebhookEvent


__all__ = [
    # Base
    "TimestampMixin",
    "UUIDMixin",
    "ensure_utc",
    "utcnow",
    # Tables
    "AccountModel",
    "PaymentModel",
    "ProcessedWebhookEvent",
]
