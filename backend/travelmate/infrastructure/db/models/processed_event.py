"""
Processed Webhook Event Model

Idempotency log of provider event ids already applied.
"""

from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from travelmate.infrastructure.db.models.base import utcnow


class ProcessedWebhookEvent(SQLModel, table=True):
    """Maps to 'processed_webhook_events'. Pruned after the retention window."""

    __tablename__ = "processed_webhook_events"

    event_id: str = Field(primary_key=True, max_length=255)
    event_type: str = Field(max_length=100, nullable=False)
    processed_at: datetime = Field(
        default_factory=utcnow,
        sa_type=DateTime(timezone=True),
        index=True,
        nullable=False,
    )
