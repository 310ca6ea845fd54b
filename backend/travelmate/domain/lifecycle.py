"""
Subscription Lifecycle State Machine

Single authoritative transition table for an account's subscription snapshot.

    FREE      --checkout completed-->            ACTIVE(tier)
    ACTIVE    --subscription active/trialing-->  ACTIVE      (period end refreshed)
    ACTIVE    --subscription past_due-->         PAST_DUE
    PAST_DUE  --subscription active-->           ACTIVE
    ACTIVE|PAST_DUE --subscription deleted-->    FREE

Canceled collapses into FREE. The repository enforces the legal source
states and the event-timestamp guard inside one conditional UPDATE.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from travelmate.domain.subscription import (
    ACTIVE_STATUSES,
    SnapshotUpdate,
    SubscriptionStatus,
    SubscriptionTier,
)


logger = logging.getLogger(__name__)


class SubscriptionState(str, Enum):
    """Lifecycle state derived from (tier, status)."""
    FREE = "free"
    ACTIVE = "active"
    PAST_DUE = "past_due"


class LifecycleTrigger(str, Enum):
    """Provider-originated events that move the snapshot."""
    CHECKOUT_COMPLETED = "checkout_completed"
    SUBSCRIPTION_ACTIVE = "subscription_active"
    SUBSCRIPTION_PAST_DUE = "subscription_past_due"
    SUBSCRIPTION_DELETED = "subscription_deleted"


S = SubscriptionState
T = LifecycleTrigger

TRANSITIONS: dict[tuple[SubscriptionState, LifecycleTrigger], SubscriptionState] = {
    (S.FREE, T.CHECKOUT_COMPLETED): S.ACTIVE,
    # A second checkout (tier change or re-subscribe after lapse)
    (S.ACTIVE, T.CHECKOUT_COMPLETED): S.ACTIVE,
    (S.PAST_DUE, T.CHECKOUT_COMPLETED): S.ACTIVE,

    (S.ACTIVE, T.SUBSCRIPTION_ACTIVE): S.ACTIVE,
    (S.ACTIVE, T.SUBSCRIPTION_PAST_DUE): S.PAST_DUE,
    (S.PAST_DUE, T.SUBSCRIPTION_ACTIVE): S.ACTIVE,
    (S.PAST_DUE, T.SUBSCRIPTION_PAST_DUE): S.PAST_DUE,

    (S.ACTIVE, T.SUBSCRIPTION_DELETED): S.FREE,
    (S.PAST_DUE, T.SUBSCRIPTION_DELETED): S.FREE,
}

del S, T


# Provider statuses outside our four collapse here. Anything unknown fails
# closed to past_due so it never grants access.
_PROVIDER_STATUS_MAP = {
    "active": SubscriptionStatus.ACTIVE,
    "trialing": SubscriptionStatus.TRIALING,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.PAST_DUE,
    "paused": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete_expired": SubscriptionStatus.CANCELED,
}


def map_provider_status(raw_status: Optional[str]) -> SubscriptionStatus:
    """Map a Stripe subscription status onto the local status set."""
    status = _PROVIDER_STATUS_MAP.get((raw_status or "").lower())
    if status is None:
        logger.warning(f"Unknown provider subscription status {raw_status!r}, treating as past_due")
        return SubscriptionStatus.PAST_DUE
    return status


def state_of(tier: SubscriptionTier, status: Optional[SubscriptionStatus]) -> SubscriptionState:
    """Derive the lifecycle state of a stored snapshot."""
    if tier == SubscriptionTier.FREE or status == SubscriptionStatus.CANCELED:
        return SubscriptionState.FREE
    if status in ACTIVE_STATUSES:
        return SubscriptionState.ACTIVE
    return SubscriptionState.PAST_DUE


def trigger_for_status(status: SubscriptionStatus) -> LifecycleTrigger:
    """Pick the trigger a subscription.updated event represents."""
    if status in ACTIVE_STATUSES:
        return LifecycleTrigger.SUBSCRIPTION_ACTIVE
    if status == SubscriptionStatus.CANCELED:
        return LifecycleTrigger.SUBSCRIPTION_DELETED
    return LifecycleTrigger.SUBSCRIPTION_PAST_DUE


def source_states(trigger: LifecycleTrigger) -> frozenset[SubscriptionState]:
    """States from which ``trigger`` is a legal transition."""
    return frozenset(state for (state, t) in TRANSITIONS if t == trigger)


def next_state(state: SubscriptionState, trigger: LifecycleTrigger) -> Optional[SubscriptionState]:
    """Target state, or None when the transition is not in the table."""
    return TRANSITIONS.get((state, trigger))


@dataclass(frozen=True)
class PlannedTransition:
    """A snapshot write plus the source states it is legal from."""
    trigger: LifecycleTrigger
    update: SnapshotUpdate
    from_states: frozenset[SubscriptionState]


def plan_transition(
    trigger: LifecycleTrigger,
    *,
    tier: Optional[SubscriptionTier] = None,
    status: Optional[SubscriptionStatus] = None,
    period_end: Optional[datetime] = None,
    provider_customer_id: Optional[str] = None,
    event_at: Optional[datetime] = None,
) -> PlannedTransition:
    """
    Build the snapshot write for ``trigger``.

    Raises:
        ValueError: if the arguments cannot produce a valid snapshot
            (for example a checkout completion for the FREE tier).
    """
    if trigger == LifecycleTrigger.CHECKOUT_COMPLETED:
        if tier is None or tier == SubscriptionTier.FREE:
            raise ValueError("Checkout completion requires a paid tier")
        update = SnapshotUpdate(
            tier=tier,
            status=SubscriptionStatus.ACTIVE,
            period_end=period_end,
            provider_customer_id=provider_customer_id,
            event_at=event_at,
        )
    elif trigger == LifecycleTrigger.SUBSCRIPTION_DELETED:
        update = SnapshotUpdate(
            tier=SubscriptionTier.FREE,
            status=None,
            period_end=None,
            event_at=event_at,
        )
    else:
        if status is None:
            raise ValueError(f"{trigger.value} requires a status")
        if trigger_for_status(status) != trigger:
            raise ValueError(f"Status {status.value} does not match trigger {trigger.value}")
        # Tier is left untouched
        update = SnapshotUpdate(status=status, period_end=period_end, event_at=event_at)

    return PlannedTransition(
        trigger=trigger,
        update=update,
        from_states=source_states(trigger),
    )
