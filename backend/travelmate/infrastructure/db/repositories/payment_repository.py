"""
Payment Repository

Append-only access to payment audit rows. Rows are never updated.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from travelmate.domain.subscription import (
    BillingPeriod,
    PaymentRecord,
    PaymentStatus,
    SubscriptionTier,
)
from travelmate.infrastructure.db.database import get_session_context
from travelmate.infrastructure.db.models.payment import PaymentModel
from travelmate.infrastructure.db.models.base import ensure_utc


logger = logging.getLogger(__name__)


class PaymentRepository:
    """Repository for payment records."""

    async def append(
        self,
        account_id: str,
        provider_payment_id: str,
        amount: int,
        currency: str,
        status: PaymentStatus,
        tier: SubscriptionTier,
        billing_period: Optional[BillingPeriod] = None,
    ) -> Optional[PaymentRecord]:
        """
        Insert one payment row.

        Returns:
            The stored record, or None if this provider payment id was
            already recorded.
        """
        model = PaymentModel(
            account_id=UUID(account_id),
            provider_payment_id=provider_payment_id,
            amount=amount,
            currency=currency.upper(),
            status=status.value,
            tier=tier.value,
            billing_period=billing_period.value if billing_period else None,
        )

        try:
            async with get_session_context() as session:
                session.add(model)
                await session.flush()
                await session.refresh(model)
                record = self._to_domain(model)
        except IntegrityError:
            logger.info(f"Payment {provider_payment_id} already recorded, skipping")
            return None

        logger.info(
            f"Recorded {status.value} payment {provider_payment_id} for account {account_id}: "
            f"{amount} {currency.upper()}"
        )
        return record

    async def list_for_account(self, account_id: str, limit: int = 50) -> list[PaymentRecord]:
        """Payment history for one account, newest first."""
        async with get_session_context() as session:
            statement = (
                select(PaymentModel)
                .where(PaymentModel.account_id == UUID(account_id))
                .order_by(PaymentModel.created_at.desc())
                .limit(limit)
            )
            result = await session.execute(statement)
            return [self._to_domain(model) for model in result.scalars().all()]

    def _to_domain(self, model: PaymentModel) -> PaymentRecord:
        return PaymentRecord(
            id=str(model.id),
            account_id=str(model.account_id),
            provider_payment_id=model.provider_payment_id,
            amount=model.amount,
            currency=model.currency,
            status=PaymentStatus(model.status),
            tier=SubscriptionTier(model.tier),
            billing_period=BillingPeriod(model.billing_period) if model.billing_period else None,
            created_at=ensure_utc(model.created_at),
        )


_payment_repo_instance: Optional[PaymentRepository] = None


def get_payment_repository() -> PaymentRepository:
    """Get or create payment repository singleton."""
    global _payment_repo_instance

    if _payment_repo_instance is None:
        _payment_repo_instance = PaymentRepository()

    return _payment_repo_instance
