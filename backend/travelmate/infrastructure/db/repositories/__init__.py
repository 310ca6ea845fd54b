"""
Repository Layer for TravelMate

Exports all repository classes for dependency injection.
"""

from travelmate.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    ApplyOutcome,
    get_account_repository,
)
from travelmate.infrastructure.db.repositories.payment_repository import (
    PaymentRepository,
    get_payment_repository,
)
from travelmate.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
    get_webhook_event_repository,
)


__all__ = [
    "AccountRepository",
    "ApplyOutcome",
    "get_account_repository",
    "PaymentRepository",
    "get_payment_repository",
    "WebhookEventRepository",
    "get_webhook_event_repository",
]
