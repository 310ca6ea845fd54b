"""
API Dependencies

FastAPI dependency injection for authentication, tier gating and services.

Security: access tokens are verified with the HS256 secret. Never decode
without verification.
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from travelmate.domain.access import authorize
from travelmate.domain.subscription import Account, SubscriptionTier
from travelmate.infrastructure.db.repositories import (
    AccountRepository,
    PaymentRepository,
    WebhookEventRepository,
    get_account_repository,
    get_payment_repository,
    get_webhook_event_repository,
)
from travelmate.infrastructure.exceptions import NotFoundError
from travelmate.infrastructure.payments import StripeService, get_stripe_service
from travelmate.infrastructure.services.auth_service import AuthService, decode_access_token
from travelmate.infrastructure.services.checkout_service import CheckoutService
from travelmate.infrastructure.services.webhook_reconciler import WebhookReconciler


logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract and verify the account ID from a bearer token.

    Returns:
        Authenticated account ID (``sub`` claim).

    Raises:
        HTTPException 401: token missing, expired, or invalid.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
        )
    except jwt.InvalidTokenError as e:
        logger.warning("JWT verification failed: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or unverifiable token",
        )

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing user ID",
        )

    return user_id


async def get_current_account(
    user_id: str = Depends(get_current_user_id),
    accounts: AccountRepository = Depends(get_account_repository),
) -> Account:
    """Load the authenticated account. A token for a deleted account is 401."""
    try:
        return await accounts.get(user_id)
    except NotFoundError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account no longer exists",
        )


def require_tier(*tiers: SubscriptionTier):
    """
    Dependency factory gating a route on the caller's subscription.

    Usage:
        @router.get("/export", dependencies=[Depends(require_tier(SubscriptionTier.PRO))])
    """
    required = frozenset(tiers)

    async def dependency(account: Account = Depends(get_current_account)) -> Account:
        decision = authorize(account, required)
        if not decision:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "error": "Subscription required",
                    "reason": decision.reason.value,
                    "requiredTiers": sorted(t.value for t in required),
                    "currentTier": account.tier.value,
                },
            )
        return account

    return dependency


# =============================================================================
# Service Providers
# =============================================================================

def get_auth_service(
    accounts: AccountRepository = Depends(get_account_repository),
) -> AuthService:
    return AuthService(accounts)


def get_checkout_service(
    accounts: AccountRepository = Depends(get_account_repository),
    gateway: StripeService = Depends(get_stripe_service),
) -> CheckoutService:
    return CheckoutService(accounts, gateway)


def get_webhook_reconciler(
    accounts: AccountRepository = Depends(get_account_repository),
    payments: PaymentRepository = Depends(get_payment_repository),
    events: WebhookEventRepository = Depends(get_webhook_event_repository),
    gateway: StripeService = Depends(get_stripe_service),
) -> WebhookReconciler:
    return WebhookReconciler(accounts, payments, events, gateway)
