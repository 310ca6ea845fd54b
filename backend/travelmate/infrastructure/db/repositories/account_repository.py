"""
Account Repository

Data access layer for accounts and their subscription snapshot.

Every snapshot mutation is one conditional UPDATE so concurrent webhook
deliveries and checkouts never read-modify-write across two round trips.
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from travelmate.domain.lifecycle import SubscriptionState, state_of
from travelmate.domain.subscription import (
    Account,
    SnapshotUpdate,
    SubscriptionStatus,
    SubscriptionTier,
)
from travelmate.infrastructure.db.database import get_session_context
from travelmate.infrastructure.db.models.account import AccountModel
from travelmate.infrastructure.db.models.base import ensure_utc
from travelmate.infrastructure.exceptions import ConflictError, NotFoundError


logger = logging.getLogger(__name__)


class ApplyOutcome(str, Enum):
    """Result of a conditional snapshot write."""
    APPLIED = "applied"
    STALE = "stale"          # older than the event already reflected
    REJECTED = "rejected"    # transition not legal from the current state
    NOT_FOUND = "not_found"  # account missing or deleted concurrently


_FREE = SubscriptionTier.FREE.value
_ACTIVE_VALUES = (SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIALING.value)
_CANCELED = SubscriptionStatus.CANCELED.value


def _as_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def _state_clause(state: SubscriptionState):
    """SQL mirror of lifecycle.state_of for one state."""
    if state == SubscriptionState.FREE:
        return or_(AccountModel.tier == _FREE, AccountModel.status == _CANCELED)
    if state == SubscriptionState.ACTIVE:
        return and_(AccountModel.tier != _FREE, AccountModel.status.in_(_ACTIVE_VALUES))
    return and_(
        AccountModel.tier != _FREE,
        or_(
            AccountModel.status.is_(None),
            AccountModel.status.not_in(_ACTIVE_VALUES + (_CANCELED,)),
        ),
    )


class AccountRepository:
    """
    Repository for account data access.

    Each method is its own unit of work via get_session_context.
    """

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get(self, account_id: str) -> Account:
        """
        Get account by ID.

        Raises:
            NotFoundError: if no account has this ID
        """
        account = await self.find(account_id)
        if account is None:
            raise NotFoundError(f"Account {account_id} not found", operation="get", table="accounts")
        return account

    async def find(self, account_id: str) -> Optional[Account]:
        """Get account by ID, or None."""
        account_uuid = _as_uuid(account_id)
        if account_uuid is None:
            return None

        async with get_session_context() as session:
            model = await session.get(AccountModel, account_uuid)
            return self._to_domain(model) if model else None

    async def get_by_email(self, email: str) -> Optional[Account]:
        async with get_session_context() as session:
            statement = select(AccountModel).where(AccountModel.email == email.strip().lower())
            result = await session.execute(statement)
            model = result.scalar_one_or_none()
            return self._to_domain(model) if model else None

    async def get_by_provider_customer_id(self, customer_id: str) -> Optional[Account]:
        """Get account by Stripe customer ID."""
        async with get_session_context() as session:
            statement = select(AccountModel).where(
                AccountModel.provider_customer_id == customer_id
            )
            result = await session.execute(statement)
            model = result.scalar_one_or_none()
            return self._to_domain(model) if model else None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create(
        self,
        email: str,
        password_hash: str,
        name: Optional[str] = None,
    ) -> Account:
        """
        Create a FREE account.

        Raises:
            ConflictError: if the email is already registered
        """
        email = email.strip().lower()
        model = AccountModel(
            email=email,
            password_hash=password_hash,
            name=name,
            tier=_FREE,
            status=None,
        )

        try:
            async with get_session_context() as session:
                session.add(model)
                await session.flush()
                await session.refresh(model)
                account = self._to_domain(model)
        except IntegrityError as e:
            raise ConflictError(
                f"Account with email {email} already exists",
                operation="create",
                table="accounts",
                original_error=e,
            )

        logger.info(f"Created account {account.id}")
        return account

    async def update_profile(
        self,
        account_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Account:
        """
        Update name and/or email in one statement. Snapshot fields are untouched.

        Raises:
            NotFoundError: if the account does not exist
            ConflictError: if the new email belongs to another account
        """
        values = {"updated_at": datetime.now(timezone.utc)}
        if name is not None:
            values["name"] = name
        if email is not None:
            values["email"] = email.strip().lower()

        statement = (
            update(AccountModel)
            .where(AccountModel.id == _as_uuid(account_id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        try:
            async with get_session_context() as session:
                result = await session.execute(statement)
                if result.rowcount != 1:
                    raise NotFoundError(
                        f"Account {account_id} not found",
                        operation="update_profile",
                        table="accounts",
                    )
        except IntegrityError as e:
            raise ConflictError(
                "Email already in use",
                operation="update_profile",
                table="accounts",
                original_error=e,
            )

        return await self.get(account_id)

    async def set_password_hash(self, account_id: str, password_hash: str) -> None:
        """
        Replace the stored credential hash.

        Raises:
            NotFoundError: if the account does not exist
        """
        statement = (
            update(AccountModel)
            .where(AccountModel.id == _as_uuid(account_id))
            .values(password_hash=password_hash, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )

        async with get_session_context() as session:
            result = await session.execute(statement)
            if result.rowcount != 1:
                raise NotFoundError(
                    f"Account {account_id} not found",
                    operation="set_password_hash",
                    table="accounts",
                )

        logger.info(f"Password changed for account {account_id}")

    async def apply_subscription_snapshot(
        self,
        account_id: str,
        snapshot: SnapshotUpdate,
        from_states: Optional[Iterable[SubscriptionState]] = None,
    ) -> ApplyOutcome:
        """
        Atomically write ``snapshot`` onto the account.

        The UPDATE only matches when the account is in one of ``from_states``
        and its last applied event is not newer than ``snapshot.event_at``.
        A missing account is a no-op, not an error.
        """
        account_uuid = _as_uuid(account_id)
        if account_uuid is None:
            return ApplyOutcome.NOT_FOUND

        conditions = [AccountModel.id == account_uuid]
        if from_states is not None:
            conditions.append(or_(*[_state_clause(s) for s in from_states]))
        if snapshot.event_at is not None:
            conditions.append(
                or_(
                    AccountModel.snapshot_event_at.is_(None),
                    AccountModel.snapshot_event_at <= snapshot.event_at,
                )
            )

        values = {
            "status": snapshot.status.value if snapshot.status else None,
            "version": AccountModel.version + 1,
            "updated_at": datetime.now(timezone.utc),
        }
        if snapshot.tier is not None:
            values["tier"] = snapshot.tier.value
        if snapshot.tier == SubscriptionTier.FREE or snapshot.period_end is not None:
            values["period_end"] = snapshot.period_end
        if snapshot.provider_customer_id:
            # Never overwrite an existing customer id
            values["provider_customer_id"] = func.coalesce(
                AccountModel.provider_customer_id, snapshot.provider_customer_id
            )
        if snapshot.event_at is not None:
            values["snapshot_event_at"] = snapshot.event_at

        statement = (
            update(AccountModel)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )

        async with get_session_context() as session:
            result = await session.execute(statement)
            applied = result.rowcount == 1

        if applied:
            logger.info(
                f"Applied snapshot to account {account_id}: tier={snapshot.tier}, "
                f"status={snapshot.status}"
            )
            return ApplyOutcome.APPLIED

        return await self._classify_miss(account_id, snapshot, from_states)

    async def attach_provider_customer_id(self, account_id: str, customer_id: str) -> Account:
        """
        Set the Stripe customer ID if none is stored yet.

        Re-attaching the same ID is a no-op.

        Raises:
            NotFoundError: if the account does not exist
            ConflictError: if a different customer ID is already stored
        """
        account_uuid = _as_uuid(account_id)
        statement = (
            update(AccountModel)
            .where(
                AccountModel.id == account_uuid,
                AccountModel.provider_customer_id.is_(None),
            )
            .values(
                provider_customer_id=customer_id,
                version=AccountModel.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

        try:
            async with get_session_context() as session:
                result = await session.execute(statement)
                attached = result.rowcount == 1
        except IntegrityError as e:
            raise ConflictError(
                f"Customer {customer_id} already belongs to another account",
                operation="attach_provider_customer_id",
                table="accounts",
                original_error=e,
            )

        account = await self.get(account_id)
        if attached:
            logger.info(f"Attached Stripe customer {customer_id} to account {account_id}")
            return account

        if account.provider_customer_id != customer_id:
            raise ConflictError(
                f"Account {account_id} already has customer {account.provider_customer_id}",
                operation="attach_provider_customer_id",
                table="accounts",
            )
        return account

    async def downgrade_to_free(self, account_id: str) -> Account:
        """
        Administrative reset to FREE, bypassing the provider event guard.

        Raises:
            NotFoundError: if the account does not exist
        """
        statement = (
            update(AccountModel)
            .where(AccountModel.id == _as_uuid(account_id))
            .values(
                tier=_FREE,
                status=None,
                period_end=None,
                version=AccountModel.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )

        async with get_session_context() as session:
            result = await session.execute(statement)
            if result.rowcount != 1:
                raise NotFoundError(
                    f"Account {account_id} not found",
                    operation="downgrade_to_free",
                    table="accounts",
                )

        logger.info(f"Downgraded account {account_id} to FREE")
        return await self.get(account_id)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _classify_miss(
        self,
        account_id: str,
        snapshot: SnapshotUpdate,
        from_states: Optional[Iterable[SubscriptionState]],
    ) -> ApplyOutcome:
        """Explain why a conditional UPDATE matched no row (for logging)."""
        current = await self.find(account_id)
        if current is None:
            logger.warning(f"Snapshot for account {account_id} skipped: account not found")
            return ApplyOutcome.NOT_FOUND

        if (
            snapshot.event_at is not None
            and current.snapshot_event_at is not None
            and current.snapshot_event_at > snapshot.event_at
        ):
            logger.info(
                f"Discarded stale snapshot for account {account_id}: event at "
                f"{snapshot.event_at.isoformat()} older than {current.snapshot_event_at.isoformat()}"
            )
            return ApplyOutcome.STALE

        state = state_of(current.tier, current.status)
        logger.info(
            f"Rejected snapshot for account {account_id}: not a legal transition from "
            f"{state.value} (allowed from {sorted(s.value for s in from_states or [])})"
        )
        return ApplyOutcome.REJECTED

    def _to_domain(self, model: AccountModel) -> Account:
        """Convert database model to domain entity."""
        return Account(
            id=str(model.id),
            email=model.email,
            name=model.name,
            password_hash=model.password_hash,
            tier=SubscriptionTier(model.tier),
            status=SubscriptionStatus(model.status) if model.status else None,
            period_end=ensure_utc(model.period_end),
            provider_customer_id=model.provider_customer_id,
            snapshot_event_at=ensure_utc(model.snapshot_event_at),
            version=model.version or 0,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


# =============================================================================
# Singleton Instance
# =============================================================================

_account_repo_instance: Optional[AccountRepository] = None


def get_account_repository() -> AccountRepository:
    """Get or create account repository singleton."""
    global _account_repo_instance

    if _account_repo_instance is None:
        _account_repo_instance = AccountRepository()

    return _account_repo_instance
