"""
Webhook Event Repository

DB-backed idempotency log for provider webhook events (survives restarts).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from travelmate.infrastructure.db.database import get_session_context
from travelmate.infrastructure.db.models.processed_event import ProcessedWebhookEvent


logger = logging.getLogger(__name__)


class WebhookEventRepository:
    """Tracks which provider event ids have already been applied."""

    async def is_processed(self, event_id: str) -> bool:
        """Check if a webhook event has already been processed."""
        async with get_session_context() as session:
            result = await session.execute(
                select(ProcessedWebhookEvent.event_id).where(
                    ProcessedWebhookEvent.event_id == event_id
                )
            )
            return result.scalar_one_or_none() is not None

    async def mark_processed(self, event_id: str, event_type: str) -> bool:
        """
        Record a processed webhook event.

        Returns:
            False if the id was already recorded (duplicate insert is harmless).
        """
        try:
            async with get_session_context() as session:
                session.add(ProcessedWebhookEvent(event_id=event_id, event_type=event_type))
        except IntegrityError:
            logger.info(f"Event {event_id} was already marked processed")
            return False
        return True

    async def prune(self, retention_days: int) -> int:
        """
        Delete entries older than the retention window.

        Stripe does not redeliver events older than 30 days, so entries past
        that point can no longer guard anything.

        Returns:
            Number of rows deleted
        """
        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        async with get_session_context() as session:
            result = await session.execute(
                delete(ProcessedWebhookEvent).where(ProcessedWebhookEvent.processed_at < cutoff)
            )
            deleted = result.rowcount or 0

        logger.info(f"Pruned {deleted} processed webhook events older than {retention_days} days")
        return deleted


_webhook_event_repo_instance: Optional[WebhookEventRepository] = None


def get_webhook_event_repository() -> WebhookEventRepository:
    """Get or create webhook event repository singleton."""
    global _webhook_event_repo_instance

    if _webhook_event_repo_instance is None:
        _webhook_event_repo_instance = WebhookEventRepository()

    return _webhook_event_repo_instance
