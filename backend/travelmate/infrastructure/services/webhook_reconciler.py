"""
Stripe Webhook Reconciler

Applies verified Stripe events to the local subscription snapshot.

Critical Events:
- checkout.session.completed: Activate the purchased tier
- customer.subscription.updated: Sync status and period end
- customer.subscription.deleted: Return the account to FREE
- invoice.payment_succeeded / invoice.payment_failed: Audit records only

Processing order is verify, idempotency check, dispatch, then record the
event id. An event id is recorded only after it was applied successfully.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional

from travelmate.domain.lifecycle import (
    LifecycleTrigger,
    map_provider_status,
    plan_transition,
    trigger_for_status,
)
from travelmate.domain.subscription import (
    Account,
    BillingPeriod,
    PaymentStatus,
    SubscriptionTier,
)
from travelmate.infrastructure.db.repositories.account_repository import (
    AccountRepository,
    ApplyOutcome,
)
from travelmate.infrastructure.db.repositories.payment_repository import PaymentRepository
from travelmate.infrastructure.db.repositories.webhook_event_repository import (
    WebhookEventRepository,
)
from travelmate.infrastructure.exceptions import MalformedEventError
from travelmate.infrastructure.payments.stripe_service import (
    BillingEvent,
    StripeService,
    subscription_period_end,
)


logger = logging.getLogger(__name__)


CHECKOUT_METADATA_FIELDS = ("account_id", "tier", "billing_period")


class WebhookOutcome(str, Enum):
    """Acknowledgement body returned to Stripe."""
    SUCCESS = "success"
    ALREADY_PROCESSED = "already_processed"
    IGNORED = "ignored"
    ERROR = "error"


def _metadata_of(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    """Metadata of a Stripe object, falling back to an invoice's subscription details."""
    metadata = obj.get("metadata") or {}
    if metadata:
        return metadata
    details = obj.get("subscription_details") or (obj.get("parent") or {}).get(
        "subscription_details"
    ) or {}
    return details.get("metadata") or {}


class WebhookReconciler:
    """
    Reconciles Stripe webhook events into account snapshots.

    Only an invalid signature or an incomplete checkout completion fails the
    request. Any other processing error is logged and acknowledged, so Stripe
    does not retry it forever.
    """

    def __init__(
        self,
        accounts: AccountRepository,
        payments: PaymentRepository,
        events: WebhookEventRepository,
        gateway: StripeService,
    ):
        self._accounts = accounts
        self._payments = payments
        self._events = events
        self._gateway = gateway
        self._handlers: dict[str, Callable[[BillingEvent], Awaitable[None]]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.updated": self._handle_subscription_updated,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "invoice.payment_succeeded": self._handle_invoice_paid,
            "invoice.payment_failed": self._handle_invoice_failed,
        }

    async def handle_event(self, payload: bytes, signature: str) -> WebhookOutcome:
        """
        Verify and apply one webhook delivery.

        Raises:
            InvalidSignatureError: signature verification failed
            MalformedEventError: checkout completion missing metadata
        """
        event = self._gateway.verify_and_parse_event(payload, signature)
        if not event.id or not event.type:
            raise MalformedEventError("Event is missing its id or type", event_id=event.id)

        if await self._events.is_processed(event.id):
            logger.info(f"Event {event.id} already processed, skipping")
            return WebhookOutcome.ALREADY_PROCESSED

        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info(f"Ignoring unhandled webhook event type {event.type} ({event.id})")
            await self._events.mark_processed(event.id, event.type)
            return WebhookOutcome.IGNORED

        logger.info(f"Processing webhook event: {event.type} ({event.id})")

        try:
            await handler(event)
        except MalformedEventError:
            raise
        except Exception as e:
            logger.exception(
                f"Error processing webhook {event.type} ({event.id}) "
                f"for account {_metadata_of(event.data_object).get('account_id')}: {e}"
            )
            return WebhookOutcome.ERROR

        await self._events.mark_processed(event.id, event.type)
        return WebhookOutcome.SUCCESS

    # =========================================================================
    # Event Handlers
    # =========================================================================

    async def _handle_checkout_completed(self, event: BillingEvent) -> None:
        """
        Activate the purchased tier and record the initial payment.

        The payment is recorded whenever the account exists, including when
        the snapshot write comes back stale or rejected.
        """
        session = event.data_object
        metadata = session.get("metadata") or {}

        missing = [name for name in CHECKOUT_METADATA_FIELDS if not metadata.get(name)]
        if missing:
            raise MalformedEventError(
                f"Checkout session {session.get('id')} is missing metadata: {', '.join(missing)}",
                event_id=event.id,
                missing_fields=missing,
            )

        try:
            tier = SubscriptionTier(metadata["tier"])
            billing_period = BillingPeriod(metadata["billing_period"])
        except ValueError as e:
            raise MalformedEventError(
                f"Checkout session {session.get('id')} has invalid metadata: {e}",
                event_id=event.id,
                original_error=e,
            )
        if tier == SubscriptionTier.FREE:
            raise MalformedEventError(
                f"Checkout session {session.get('id')} names the FREE tier",
                event_id=event.id,
            )

        account_id = metadata["account_id"]

        period_end = None
        subscription_id = session.get("subscription")
        if subscription_id:
            subscription = await self._gateway.get_subscription(subscription_id)
            period_end = subscription_period_end(subscription)

        plan = plan_transition(
            LifecycleTrigger.CHECKOUT_COMPLETED,
            tier=tier,
            period_end=period_end,
            provider_customer_id=session.get("customer"),
            event_at=event.created,
        )
        outcome = await self._accounts.apply_subscription_snapshot(
            account_id, plan.update, plan.from_states
        )
        if outcome == ApplyOutcome.NOT_FOUND:
            logger.warning(f"Checkout {session.get('id')} completed for unknown account {account_id}")
            return

        await self._payments.append(
            account_id=account_id,
            provider_payment_id=session.get("payment_intent") or session.get("id"),
            amount=session.get("amount_total") or 0,
            currency=session.get("currency") or "usd",
            status=PaymentStatus.SUCCEEDED,
            tier=tier,
            billing_period=billing_period,
        )
        logger.info(f"Checkout completed for account {account_id}: {tier.value} ({outcome.value})")

    async def _handle_subscription_updated(self, event: BillingEvent) -> None:
        """Sync status and period end; the tier is left as is."""
        subscription = event.data_object
        account = await self._resolve_account(subscription)
        if account is None:
            return

        status = map_provider_status(subscription.get("status"))
        trigger = trigger_for_status(status)
        if trigger == LifecycleTrigger.SUBSCRIPTION_DELETED:
            plan = plan_transition(trigger, event_at=event.created)
        else:
            plan = plan_transition(
                trigger,
                status=status,
                period_end=subscription_period_end(subscription),
                event_at=event.created,
            )

        outcome = await self._accounts.apply_subscription_snapshot(
            account.id, plan.update, plan.from_states
        )
        logger.info(
            f"Subscription {subscription.get('id')} updated to {status.value} "
            f"for account {account.id}: {outcome.value}"
        )

    async def _handle_subscription_deleted(self, event: BillingEvent) -> None:
        """Downgrade to the FREE tier."""
        subscription = event.data_object
        account = await self._resolve_account(subscription)
        if account is None:
            return

        plan = plan_transition(LifecycleTrigger.SUBSCRIPTION_DELETED, event_at=event.created)
        outcome = await self._accounts.apply_subscription_snapshot(
            account.id, plan.update, plan.from_states
        )
        logger.info(
            f"Subscription {subscription.get('id')} deleted for account {account.id}: "
            f"{outcome.value}"
        )

    async def _handle_invoice_paid(self, event: BillingEvent) -> None:
        """Record a renewal payment. The first invoice is covered by checkout completion."""
        invoice = event.data_object
        if invoice.get("billing_reason") == "subscription_create":
            logger.debug(f"Skipping initial invoice {invoice.get('id')}")
            return

        await self._record_invoice(
            invoice,
            provider_payment_id=invoice.get("id"),
            amount=invoice.get("amount_paid") or 0,
            status=PaymentStatus.SUCCEEDED,
        )

    async def _handle_invoice_failed(self, event: BillingEvent) -> None:
        """Record a failed payment attempt. Status changes arrive via subscription.updated."""
        invoice = event.data_object
        # One invoice can fail several times
        await self._record_invoice(
            invoice,
            provider_payment_id=event.id,
            amount=invoice.get("amount_due") or 0,
            status=PaymentStatus.FAILED,
        )
        logger.warning(f"Payment failed for invoice {invoice.get('id')}")

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _record_invoice(
        self,
        invoice: Mapping[str, Any],
        provider_payment_id: str,
        amount: int,
        status: PaymentStatus,
    ) -> None:
        account = await self._resolve_account(invoice)
        if account is None:
            return

        billing_period = None
        raw_period = _metadata_of(invoice).get("billing_period")
        if raw_period in {p.value for p in BillingPeriod}:
            billing_period = BillingPeriod(raw_period)

        await self._payments.append(
            account_id=account.id,
            provider_payment_id=provider_payment_id,
            amount=amount,
            currency=invoice.get("currency") or "usd",
            status=status,
            tier=account.tier,
            billing_period=billing_period,
        )

    async def _resolve_account(self, obj: Mapping[str, Any]) -> Optional[Account]:
        """
        Find the account a Stripe object belongs to.

        Metadata account id first, then the Stripe customer. Objects that
        match neither are logged and ignored.
        """
        account_id = _metadata_of(obj).get("account_id")
        if account_id:
            account = await self._accounts.find(account_id)
            if account is not None:
                return account

        customer_id = obj.get("customer")
        if customer_id:
            account = await self._accounts.get_by_provider_customer_id(customer_id)
            if account is not None:
                return account

        logger.warning(
            f"No account matches {obj.get('object', 'object')} {obj.get('id')} "
            f"(account_id={account_id}, customer={customer_id}); ignoring"
        )
        return None
