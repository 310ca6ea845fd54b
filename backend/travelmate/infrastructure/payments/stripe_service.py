"""
Stripe Payment Service

Infrastructure gateway for Stripe. Wraps customer creation, checkout and
portal sessions, subscription lookup and webhook verification, with no
business logic of its own.

- Hosted Checkout for minimal PCI burden
- Customer Portal for subscription management
- Every call bounded by a timeout, no SDK retries on the request path
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

import stripe
from stripe import StripeError

from travelmate.config.settings import get_settings
from travelmate.domain.subscription import CheckoutSession
from travelmate.infrastructure.exceptions import (
    ConfigurationError,
    GatewayError,
    InvalidSignatureError,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingEvent:
    """A verified provider event, reduced to plain data."""
    id: str
    type: str
    created: Optional[datetime]
    data_object: dict = field(default_factory=dict)


def _gateway_error(operation: str, error: StripeError) -> GatewayError:
    return GatewayError(
        f"Stripe {operation} failed: {error.user_message or error}",
        http_status=error.http_status,
        code=error.code,
        operation=operation,
        original_error=error,
    )


def _from_timestamp(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def subscription_period_end(subscription: Mapping[str, Any]) -> Optional[datetime]:
    """
    Current period end of a Stripe subscription.

    Newer API versions moved current_period_end onto subscription items.
    """
    period_end = subscription.get("current_period_end")
    if period_end is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            period_end = items[0].get("current_period_end")
    return _from_timestamp(period_end)


class StripeService:
    """
    Stripe payment processing service.

    All network methods are async and raise GatewayError carrying the
    provider's HTTP status and error code.
    """

    def __init__(self):
        """Initialize Stripe with API key and transport from settings."""
        settings = get_settings()
        self._api_key = settings.stripe_secret_key
        self._webhook_secret = settings.stripe_webhook_secret

        if self._api_key:
            stripe.api_key = self._api_key

        # Checkout start fails visibly on timeout; the user may retry
        stripe.max_network_retries = 0
        stripe.default_http_client = stripe.HTTPXClient(
            timeout=settings.stripe_api_timeout_seconds,
        )

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def create_customer(
        self,
        account_id: str,
        email: str,
        name: Optional[str] = None,
    ) -> str:
        """
        Create a new Stripe customer.

        The idempotency key is derived from the account, so two concurrent
        first checkouts for one account get the same customer back.

        Returns:
            Stripe customer ID
        """
        try:
            customer = await stripe.Customer.create_async(
                email=email,
                name=name,
                metadata={"account_id": account_id},
                idempotency_key=f"customer-create-{account_id}",
            )
        except StripeError as e:
            logger.error(f"Failed to create Stripe customer for account {account_id}: {e}")
            raise _gateway_error("create_customer", e)

        logger.info(f"Created Stripe customer {customer.id} for account {account_id}")
        return customer.id

    # =========================================================================
    # Checkout Session
    # =========================================================================

    async def create_checkout_session(
        self,
        customer_id: str,
        price_id: str,
        success_url: str,
        cancel_url: str,
        metadata: Mapping[str, str],
    ) -> CheckoutSession:
        """
        Create a Stripe Checkout Session in subscription mode.

        ``metadata`` is set on the session and carried onto the resulting
        subscription, so later subscription events can be matched back.
        """
        try:
            session = await stripe.checkout.Session.create_async(
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[
                    {
                        "price": price_id,
                        "quantity": 1,
                    }
                ],
                success_url=success_url,
                cancel_url=cancel_url,
                allow_promotion_codes=True,
                metadata=dict(metadata),
                subscription_data={"metadata": dict(metadata)},
            )
        except StripeError as e:
            logger.error(f"Failed to create checkout session for customer {customer_id}: {e}")
            raise _gateway_error("create_checkout_session", e)

        logger.info(f"Created checkout session {session.id} for customer {customer_id}")
        return CheckoutSession(session_id=session.id, url=session.url)

    # =========================================================================
    # Customer Portal
    # =========================================================================

    async def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """
        Create a Billing Portal session for self-service management.

        Returns:
            Portal URL
        """
        try:
            session = await stripe.billing_portal.Session.create_async(
                customer=customer_id,
                return_url=return_url,
            )
        except StripeError as e:
            logger.error(f"Failed to create portal session for customer {customer_id}: {e}")
            raise _gateway_error("create_portal_session", e)

        logger.info(f"Created portal session for customer {customer_id}")
        return session.url

    # =========================================================================
    # Subscription Queries
    # =========================================================================

    async def get_subscription(self, subscription_id: str) -> dict[str, Any]:
        """Retrieve a subscription by ID as plain data."""
        try:
            subscription = await stripe.Subscription.retrieve_async(subscription_id)
        except StripeError as e:
            logger.error(f"Failed to retrieve subscription {subscription_id}: {e}")
            raise _gateway_error("get_subscription", e)

        return subscription.to_dict()

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_and_parse_event(
        self,
        payload: bytes,
        signature: str,
        webhook_secret: Optional[str] = None,
    ) -> BillingEvent:
        """
        Verify webhook signature over the raw body and parse the event.

        Raises:
            InvalidSignatureError: payload or signature invalid
            ConfigurationError: no webhook secret configured
        """
        secret = webhook_secret or self._webhook_secret
        if not secret:
            raise ConfigurationError(
                "Webhook secret not configured",
                missing_keys=["STRIPE_WEBHOOK_SECRET"],
            )

        try:
            stripe.Webhook.construct_event(payload, signature, secret)
        except ValueError as e:
            raise InvalidSignatureError(f"Invalid payload: {e}", original_error=e)
        except stripe.SignatureVerificationError as e:
            raise InvalidSignatureError(f"Invalid signature: {e}", original_error=e)

        body = json.loads(payload)
        return BillingEvent(
            id=body.get("id"),
            type=body.get("type"),
            created=_from_timestamp(body.get("created")),
            data_object=(body.get("data") or {}).get("object") or {},
        )


# =============================================================================
# Singleton Instance (Dependency Injection Ready)
# =============================================================================

_stripe_service_instance: Optional[StripeService] = None


def get_stripe_service() -> StripeService:
    """Get or create Stripe service singleton."""
    global _stripe_service_instance

    if _stripe_service_instance is None:
        _stripe_service_instance = StripeService()

    return _stripe_service_instance
