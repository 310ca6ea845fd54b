"""
Integration Tests for Payment Routes

Verifies pricing, checkout, billing portal, subscription status, payment
history and tier gating over HTTP with the Stripe gateway mocked.
"""

from datetime import datetime, timezone

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from travelmate.api.dependencies import require_tier
from travelmate.domain.lifecycle import LifecycleTrigger, plan_transition
from travelmate.domain.subscription import (
    PaymentStatus,
    SubscriptionStatus,
    SubscriptionTier,
)
from travelmate.infrastructure.exceptions import GatewayError


T0 = datetime(2025, 2, 1, 12, 0, tzinfo=timezone.utc)
PERIOD_END = datetime(2025, 3, 1, tzinfo=timezone.utc)


async def set_snapshot(account_repo, account_id, status: SubscriptionStatus):
    checkout = plan_transition(
        LifecycleTrigger.CHECKOUT_COMPLETED,
        tier=SubscriptionTier.PRO,
        period_end=PERIOD_END,
        event_at=T0,
    )
    await account_repo.apply_subscription_snapshot(account_id, checkout.update, checkout.from_states)
    if status != SubscriptionStatus.ACTIVE:
        lapse = plan_transition(
            LifecycleTrigger.SUBSCRIPTION_PAST_DUE,
            status=status,
            event_at=T0.replace(hour=13),
        )
        await account_repo.apply_subscription_snapshot(account_id, lapse.update, lapse.from_states)


class TestPricing:

    @pytest.mark.asyncio
    async def test_pricing_is_public(self, async_client):
        response = await async_client.get("/api/payment/pricing")

        assert response.status_code == 200
        tiers = {t["tier"]: t for t in response.json()["tiers"]}
        assert set(tiers) == {"FREE", "PRO", "ENTERPRISE"}
        assert tiers["PRO"]["monthlyPrice"] == 999
        assert tiers["ENTERPRISE"]["annualPrice"] == 49900


class TestCheckout:

    @pytest.mark.asyncio
    async def test_checkout_returns_session(self, async_client, auth_headers, mock_gateway):
        response = await async_client.post(
            "/api/payment/checkout",
            json={"tier": "PRO", "billingPeriod": "monthly"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "sessionId": "cs_test_123",
            "url": "https://checkout.stripe.com/c/pay/cs_test_123",
        }
        metadata = mock_gateway.create_checkout_session.call_args.kwargs["metadata"]
        assert metadata["tier"] == "PRO"
        assert metadata["billing_period"] == "monthly"

    @pytest.mark.asyncio
    async def test_checkout_requires_auth(self, async_client):
        response = await async_client.post("/api/payment/checkout", json={"tier": "PRO"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_checkout_free_tier_rejected(self, async_client, auth_headers):
        response = await async_client.post(
            "/api/payment/checkout",
            json={"tier": "FREE", "billingPeriod": "monthly"},
            headers=auth_headers,
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_checkout_unknown_tier_is_validation_error(self, async_client, auth_headers):
        response = await async_client.post(
            "/api/payment/checkout",
            json={"tier": "PLATINUM"},
            headers=auth_headers,
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_gateway_failure_is_retryable_502(self, async_client, auth_headers, mock_gateway):
        mock_gateway.create_checkout_session.side_effect = GatewayError(
            "Stripe create_checkout_session failed", http_status=500, code="api_error"
        )

        response = await async_client.post(
            "/api/payment/checkout",
            json={"tier": "PRO", "billingPeriod": "annual"},
            headers=auth_headers,
        )

        assert response.status_code == 502
        assert "try again" in response.json()["message"]
        assert response.json()["details"]["code"] == "api_error"


class TestBillingPortal:

    @pytest.mark.asyncio
    async def test_portal_without_customer_is_bad_request(self, async_client, auth_headers):
        response = await async_client.post("/api/payment/billing-portal", json={}, headers=auth_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_portal_with_customer(self, async_client, auth_headers, account_repo, account, mock_gateway):
        await account_repo.attach_provider_customer_id(account.id, "cus_portal")

        response = await async_client.post(
            "/api/payment/billing-portal",
            json={"returnUrl": "https://travelmate.test/settings"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["url"] == "https://billing.stripe.com/p/session/test_123"
        assert mock_gateway.create_portal_session.call_args.kwargs["return_url"] == (
            "https://travelmate.test/settings"
        )

    @pytest.mark.asyncio
    async def test_portal_without_body_uses_default_return_url(
        self, async_client, auth_headers, account_repo, account, mock_gateway
    ):
        await account_repo.attach_provider_customer_id(account.id, "cus_portal")

        response = await async_client.post("/api/payment/billing-portal", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["url"] == "https://billing.stripe.com/p/session/test_123"
        assert mock_gateway.create_portal_session.call_args.kwargs["return_url"].endswith("/account")


class TestSubscriptionStatus:

    @pytest.mark.asyncio
    async def test_free_account_status(self, async_client, auth_headers, mock_gateway):
        response = await async_client.get("/api/payment/subscription-status", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "tier": "FREE",
            "status": None,
            "periodEnd": None,
            "isActive": True,
        }
        mock_gateway.get_subscription.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_past_due_is_inactive(self, async_client, auth_headers, account_repo, account):
        await set_snapshot(account_repo, account.id, SubscriptionStatus.PAST_DUE)

        response = await async_client.get("/api/payment/subscription-status", headers=auth_headers)
        data = response.json()

        assert data["tier"] == "PRO"
        assert data["status"] == "past_due"
        assert data["isActive"] is False
        assert data["periodEnd"].startswith("2025-03-01")


class TestHistory:

    @pytest.mark.asyncio
    async def test_history_lists_own_payments(self, async_client, auth_headers, payment_repo, account_repo, account):
        other = await account_repo.create("other@example.com", "hash")
        await payment_repo.append(account.id, "pi_mine", 999, "usd", PaymentStatus.SUCCEEDED, SubscriptionTier.PRO)
        await payment_repo.append(other.id, "pi_theirs", 4999, "usd", PaymentStatus.SUCCEEDED, SubscriptionTier.ENTERPRISE)

        response = await async_client.get("/api/payment/history", headers=auth_headers)

        assert response.status_code == 200
        records = response.json()
        assert [r["providerPaymentId"] for r in records] == ["pi_mine"]
        assert records[0]["currency"] == "USD"


class TestRequireTier:
    """Tier gating dependency turns a denial into 403 with its reason."""

    @pytest.fixture
    async def gated_client(self, db):
        gated = FastAPI()

        @gated.get("/premium")
        async def premium(account=Depends(require_tier(SubscriptionTier.PRO, SubscriptionTier.ENTERPRISE))):
            return {"id": account.id}

        async with AsyncClient(transport=ASGITransport(app=gated), base_url="http://test") as ac:
            yield ac

    @pytest.mark.asyncio
    async def test_free_account_denied(self, gated_client, auth_headers):
        response = await gated_client.get("/premium", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "insufficient_tier"

    @pytest.mark.asyncio
    async def test_past_due_account_denied(self, gated_client, auth_headers, account_repo, account):
        await set_snapshot(account_repo, account.id, SubscriptionStatus.PAST_DUE)

        response = await gated_client.get("/premium", headers=auth_headers)

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "inactive_subscription"

    @pytest.mark.asyncio
    async def test_active_account_allowed(self, gated_client, auth_headers, account_repo, account):
        await set_snapshot(account_repo, account.id, SubscriptionStatus.ACTIVE)

        response = await gated_client.get("/premium", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"id": account.id}
