"""
Unit tests for the access gate.

The gate reads only the local snapshot, so a lapsed paid account is denied
even while its tier still names the paid plan.
"""

from travelmate.domain.access import (
    DenialReason,
    authorize,
    is_subscription_active,
)
from travelmate.domain.subscription import (
    Account,
    SubscriptionStatus,
    SubscriptionTier,
)


PAID = {SubscriptionTier.PRO, SubscriptionTier.ENTERPRISE}


def make_account(tier=SubscriptionTier.FREE, status=None) -> Account:
    return Account(
        id="00000000-0000-0000-0000-000000000001",
        email="gate@example.com",
        password_hash="x",
        tier=tier,
        status=status,
    )


class TestAuthorize:

    def test_free_account_denied_paid_feature(self):
        decision = authorize(make_account(), PAID)
        assert not decision
        assert decision.reason == DenialReason.INSUFFICIENT_TIER

    def test_free_account_allowed_free_feature(self):
        assert authorize(make_account(), {SubscriptionTier.FREE})

    def test_active_pro_allowed(self):
        decision = authorize(make_account(SubscriptionTier.PRO, SubscriptionStatus.ACTIVE), PAID)
        assert decision.allowed is True
        assert decision.reason is None

    def test_trialing_enterprise_allowed(self):
        account = make_account(SubscriptionTier.ENTERPRISE, SubscriptionStatus.TRIALING)
        assert authorize(account, {SubscriptionTier.ENTERPRISE})

    def test_past_due_pro_denied_inactive(self):
        """Tier still says PRO, but billing lag must not grant access."""
        account = make_account(SubscriptionTier.PRO, SubscriptionStatus.PAST_DUE)
        decision = authorize(account, PAID)
        assert not decision
        assert decision.reason == DenialReason.INACTIVE_SUBSCRIPTION

    def test_canceled_pro_denied_inactive(self):
        account = make_account(SubscriptionTier.PRO, SubscriptionStatus.CANCELED)
        assert authorize(account, PAID).reason == DenialReason.INACTIVE_SUBSCRIPTION

    def test_tier_checked_before_status(self):
        account = make_account(SubscriptionTier.PRO, SubscriptionStatus.PAST_DUE)
        decision = authorize(account, {SubscriptionTier.ENTERPRISE})
        assert decision.reason == DenialReason.INSUFFICIENT_TIER


class TestIsSubscriptionActive:

    def test_free_is_active(self):
        assert is_subscription_active(make_account()) is True

    def test_paid_past_due_is_not_active(self):
        account = make_account(SubscriptionTier.PRO, SubscriptionStatus.PAST_DUE)
        assert is_subscription_active(account) is False
