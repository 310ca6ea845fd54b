"""
Subscription Domain Models

Domain models for subscription management following Clean Architecture.
Enums, DTOs, and domain entities for the subscription bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class SubscriptionTier(str, Enum):
    """Subscription tier levels."""
    FREE = "FREE"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status. FREE accounts carry no status."""
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class BillingPeriod(str, Enum):
    """Billing period for subscriptions."""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class PaymentStatus(str, Enum):
    """Outcome recorded on a payment row."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"


ACTIVE_STATUSES = frozenset({SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIALING})
PAID_TIERS = frozenset({SubscriptionTier.PRO, SubscriptionTier.ENTERPRISE})


class CamelModel(BaseModel):
    """Base for API DTOs exchanged as camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Domain Entities
# =============================================================================

class Account(BaseModel):
    """One user's identity plus the locally reconciled subscription snapshot."""
    id: str
    email: str
    name: Optional[str] = None
    password_hash: str = Field(repr=False)
    tier: SubscriptionTier = SubscriptionTier.FREE
    status: Optional[SubscriptionStatus] = None
    period_end: Optional[datetime] = None
    provider_customer_id: Optional[str] = None
    snapshot_event_at: Optional[datetime] = None
    version: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SnapshotUpdate(BaseModel):
    """
    Target subscription snapshot applied atomically to one account.

    ``tier`` left as None keeps the stored tier. Invariants:
    FREE carries neither status nor period end; a paid tier needs a status.
    """
    tier: Optional[SubscriptionTier] = None
    status: Optional[SubscriptionStatus] = None
    period_end: Optional[datetime] = None
    provider_customer_id: Optional[str] = None
    event_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_tier_status_coupling(self) -> "SnapshotUpdate":
        if self.tier == SubscriptionTier.FREE:
            if self.status is not None or self.period_end is not None:
                raise ValueError("FREE tier cannot carry a status or period end")
        elif self.status is None:
            raise ValueError("A paid or unchanged tier requires a status")
        return self


class PaymentRecord(BaseModel):
    """Append-only audit row for a completed checkout, renewal or failed invoice."""
    id: str
    account_id: str
    provider_payment_id: str
    amount: int = Field(description="Amount in minor currency units")
    currency: str
    status: PaymentStatus
    tier: SubscriptionTier
    billing_period: Optional[BillingPeriod] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CheckoutSession(BaseModel):
    """Provider checkout session as returned to the caller, verbatim."""
    session_id: str
    url: str


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateCheckoutRequest(CamelModel):
    """Request DTO for creating a checkout session."""
    tier: SubscriptionTier = Field(..., description="Subscription tier to purchase")
    billing_period: BillingPeriod = Field(
        default=BillingPeriod.MONTHLY,
        description="Billing period (monthly or annual)"
    )
    success_url: Optional[str] = Field(None, description="Redirect URL after successful payment")
    cancel_url: Optional[str] = Field(None, description="Redirect URL after cancelled payment")


class PortalSessionRequest(CamelModel):
    """Request DTO for creating a billing portal session."""
    return_url: Optional[str] = Field(None, description="URL to return to after portal session")


class CheckoutResponse(CamelModel):
    """Response DTO for checkout session creation."""
    session_id: str
    url: str


class PortalResponse(CamelModel):
    """Response DTO for portal session creation."""
    url: str


class SubscriptionStatusResponse(CamelModel):
    """Response DTO for subscription status."""
    tier: SubscriptionTier
    status: Optional[SubscriptionStatus] = None
    period_end: Optional[datetime] = None
    is_active: bool = Field(description="Whether the snapshot currently grants its tier")


class PaymentRecordResponse(CamelModel):
    """One entry of the caller's payment history."""
    id: str
    provider_payment_id: str
    amount: int
    currency: str
    status: PaymentStatus
    tier: SubscriptionTier
    billing_period: Optional[BillingPeriod] = None
    created_at: Optional[datetime] = None


class PricingTier(CamelModel):
    """Pricing information for a single tier."""
    tier: SubscriptionTier
    name: str
    monthly_price: int  # In cents
    annual_price: int  # In cents
    features: list[str]
    popular: bool = False


class PricingResponse(CamelModel):
    """Response DTO for pricing information."""
    currency: str = "USD"
    tiers: list[PricingTier]


# =============================================================================
# Tier Configuration
# =============================================================================

TIER_CATALOG = {
    SubscriptionTier.FREE: {
        "name": "Free",
        "monthly_price": 0,
        "annual_price": 0,
        "features": [
            "Basic destination search",
            "Limited to 10 searches per day",
            "Standard support",
            "Basic travel information",
        ],
    },
    SubscriptionTier.PRO: {
        "name": "Pro",
        "monthly_price": 999,
        "annual_price": 9900,
        "popular": True,
        "features": [
            "Unlimited searches",
            "Advanced filters and sorting",
            "Priority support",
            "Ad-free experience",
            "Save favorite destinations",
            "Export itineraries to PDF",
        ],
    },
    SubscriptionTier.ENTERPRISE: {
        "name": "Enterprise",
        "monthly_price": 4999,
        "annual_price": 49900,
        "features": [
            "All Pro features",
            "API access for integrations",
            "Custom branding options",
            "Dedicated account manager",
            "Priority feature requests",
            "White-label solutions",
            "99.9% SLA guarantee",
        ],
    },
}


def build_pricing() -> PricingResponse:
    """Assemble the public pricing catalogue."""
    return PricingResponse(
        tiers=[
            PricingTier(
                tier=tier,
                name=entry["name"],
                monthly_price=entry["monthly_price"],
                annual_price=entry["annual_price"],
                features=entry["features"],
                popular=entry.get("popular", False),
            )
            for tier, entry in TIER_CATALOG.items()
        ]
    )
