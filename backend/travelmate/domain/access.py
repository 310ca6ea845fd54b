"""
Access Gate

Pure predicate deciding whether an account's reconciled snapshot authorizes
a protected operation. Never calls the billing provider; webhook delivery
latency bounds how stale the answer can be.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from travelmate.domain.subscription import (
    ACTIVE_STATUSES,
    Account,
    SubscriptionTier,
)


class DenialReason(str, Enum):
    INSUFFICIENT_TIER = "insufficient_tier"
    INACTIVE_SUBSCRIPTION = "inactive_subscription"


@dataclass(frozen=True)
class AccessDecision:
    """Allowed, or Denied with a reason. A value, not an exception."""
    allowed: bool
    reason: Optional[DenialReason] = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = AccessDecision(allowed=True)


def denied(reason: DenialReason) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason)


def is_subscription_active(account: Account) -> bool:
    """FREE is always in good standing; paid tiers need active or trialing."""
    if account.tier == SubscriptionTier.FREE:
        return True
    return account.status in ACTIVE_STATUSES


def authorize(account: Account, required_tiers: Iterable[SubscriptionTier]) -> AccessDecision:
    """
    Check ``account`` against the tiers a protected operation accepts.

    A paid tier whose status has lapsed to past_due or canceled is denied
    even while its tier field still names the paid tier, so billing lag
    never becomes a free-access window.
    """
    if account.tier not in set(required_tiers):
        return denied(DenialReason.INSUFFICIENT_TIER)
    if not is_subscription_active(account):
        return denied(DenialReason.INACTIVE_SUBSCRIPTION)
    return ALLOWED
