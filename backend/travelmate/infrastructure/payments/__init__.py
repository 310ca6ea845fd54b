"""
Payments Infrastructure Module

Stripe payment processing and subscription management services.
"""

from travelmate.infrastructure.payments.stripe_service import (
    BillingEvent,
    StripeService,
    get_stripe_service,
)

__all__ = ["BillingEvent", "StripeService", "get_stripe_service"]
