"""
Checkout Service

Starts hosted Stripe checkouts and billing portal sessions for an account.
Never mutates the subscription snapshot; that is left to webhook events.
"""

import logging
from typing import Optional

from travelmate.config.settings import Settings, get_settings
from travelmate.domain.subscription import (
    Account,
    BillingPeriod,
    CheckoutSession,
    SubscriptionTier,
)
from travelmate.infrastructure.db.repositories.account_repository import AccountRepository
from travelmate.infrastructure.exceptions import ConflictError, InvalidRequestError
from travelmate.infrastructure.payments.stripe_service import StripeService


logger = logging.getLogger(__name__)


class CheckoutService:
    """
    Checkout initiation for paid tiers.

    The (account_id, tier, billing_period) metadata set on every session is
    how the webhook reconciler later finds the account, so it is never omitted.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        gateway: StripeService,
        settings: Optional[Settings] = None,
    ):
        self._accounts = accounts
        self._gateway = gateway
        self._settings = settings or get_settings()

    async def start_checkout(
        self,
        account_id: str,
        tier: SubscriptionTier,
        billing_period: BillingPeriod,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a subscription checkout session.

        Raises:
            InvalidRequestError: FREE tier, or no price configured
            NotFoundError: unknown account
            GatewayError: Stripe call failed
        """
        if tier == SubscriptionTier.FREE:
            raise InvalidRequestError("Free tier does not require checkout")

        price_id = self._settings.price_table.get((tier.value, billing_period.value))
        if not price_id:
            raise InvalidRequestError(
                f"No price configured for {tier.value} ({billing_period.value})"
            )

        account = await self._accounts.get(account_id)
        customer_id = await self._ensure_customer(account)

        frontend = self._settings.frontend_url.rstrip("/")
        session = await self._gateway.create_checkout_session(
            customer_id=customer_id,
            price_id=price_id,
            success_url=success_url
            or f"{frontend}/payment/success?session_id={{CHECKOUT_SESSION_ID}}",
            cancel_url=cancel_url or f"{frontend}/pricing",
            metadata={
                "account_id": account.id,
                "tier": tier.value,
                "billing_period": billing_period.value,
            },
        )

        logger.info(
            f"Started {tier.value} ({billing_period.value}) checkout {session.session_id} "
            f"for account {account.id}"
        )
        return session

    async def open_billing_portal(self, account_id: str, return_url: Optional[str] = None) -> str:
        """
        Create a billing portal session.

        Raises:
            InvalidRequestError: account has never been billed
        """
        account = await self._accounts.get(account_id)
        if not account.provider_customer_id:
            raise InvalidRequestError("No billing account found. Subscribe to a plan first.")

        return await self._gateway.create_portal_session(
            customer_id=account.provider_customer_id,
            return_url=return_url or f"{self._settings.frontend_url.rstrip('/')}/account",
        )

    async def _ensure_customer(self, account: Account) -> str:
        """
        Return the account's Stripe customer, creating it on first checkout.

        When a concurrent checkout attached its customer first, that one wins
        and this request continues with it.
        """
        if account.provider_customer_id:
            return account.provider_customer_id

        customer_id = await self._gateway.create_customer(account.id, account.email, account.name)

        try:
            updated = await self._accounts.attach_provider_customer_id(account.id, customer_id)
            return updated.provider_customer_id
        except ConflictError:
            current = await self._accounts.get(account.id)
            if not current.provider_customer_id:
                raise
            if current.provider_customer_id != customer_id:
                logger.warning(
                    f"Concurrent checkout for account {account.id} already attached customer "
                    f"{current.provider_customer_id}; Stripe customer {customer_id} is orphaned"
                )
            return current.provider_customer_id
