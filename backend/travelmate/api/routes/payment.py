"""
Payment API Routes

REST API endpoints for pricing, checkout, the billing portal and the
caller's subscription snapshot. Subscription state is only ever read here;
Stripe webhooks are the sole writer.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from travelmate.api.dependencies import (
    get_checkout_service,
    get_current_account,
    get_current_user_id,
)
from travelmate.domain.access import is_subscription_active
from travelmate.domain.subscription import (
    Account,
    CheckoutResponse,
    CreateCheckoutRequest,
    PaymentRecordResponse,
    PortalResponse,
    PortalSessionRequest,
    PricingResponse,
    SubscriptionStatusResponse,
    build_pricing,
)
from travelmate.infrastructure.db.repositories import PaymentRepository, get_payment_repository
from travelmate.infrastructure.services.checkout_service import CheckoutService


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Pricing Endpoints
# =============================================================================

@router.get("/pricing", response_model=PricingResponse)
async def get_pricing():
    """Public tier catalogue. Prices are in cents."""
    return build_pricing()


# =============================================================================
# Checkout Endpoints
# =============================================================================

@router.post("/checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    request: CreateCheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a Stripe Checkout session for a paid tier.

    Returns:
        CheckoutResponse with Stripe's session ID and redirect URL
    """
    session = await checkout.start_checkout(
        account_id=user_id,
        tier=request.tier,
        billing_period=request.billing_period,
        success_url=request.success_url,
        cancel_url=request.cancel_url,
    )
    return CheckoutResponse(session_id=session.session_id, url=session.url)


# =============================================================================
# Portal Endpoints
# =============================================================================

@router.post("/billing-portal", response_model=PortalResponse)
async def create_portal_session(
    request: Optional[PortalSessionRequest] = None,
    user_id: str = Depends(get_current_user_id),
    checkout: CheckoutService = Depends(get_checkout_service),
):
    """
    Create a Stripe Customer Portal session.

    Allows customers to manage their subscription:
    - Update payment method
    - Cancel subscription
    - View invoices
    """
    return_url = request.return_url if request else None
    url = await checkout.open_billing_portal(user_id, return_url)
    return PortalResponse(url=url)


# =============================================================================
# Subscription Status Endpoints
# =============================================================================

@router.get("/subscription-status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(account: Account = Depends(get_current_account)):
    """Read the local snapshot. Never calls Stripe."""
    return SubscriptionStatusResponse(
        tier=account.tier,
        status=account.status,
        period_end=account.period_end,
        is_active=is_subscription_active(account),
    )


@router.get("/history", response_model=list[PaymentRecordResponse])
async def get_payment_history(
    limit: int = Query(50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    payments: PaymentRepository = Depends(get_payment_repository),
):
    """The caller's payment records, newest first."""
    records = await payments.list_for_account(user_id, limit=limit)
    return [
        PaymentRecordResponse(
            id=record.id,
            provider_payment_id=record.provider_payment_id,
            amount=record.amount,
            currency=record.currency,
            status=record.status,
            tier=record.tier,
            billing_period=record.billing_period,
            created_at=record.created_at,
        )
        for record in records
    ]
