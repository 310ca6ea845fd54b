"""
Auth DTOs

Request/response shapes for registration, login and the current account.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from travelmate.domain.subscription import (
    Account,
    CamelModel,
    SubscriptionStatus,
    SubscriptionTier,
)


class RegisterRequest(CamelModel):
    email: str = Field(..., max_length=255)
    password: str
    name: Optional[str] = Field(None, max_length=100)


class LoginRequest(CamelModel):
    email: str
    password: str


class UpdateProfileRequest(CamelModel):
    name: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=255)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str


class MessageResponse(CamelModel):
    message: str


class AccountResponse(CamelModel):
    """Public view of an account. Never includes the password hash."""
    id: str
    email: str
    name: Optional[str] = None
    tier: SubscriptionTier
    status: Optional[SubscriptionStatus] = None
    period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            email=account.email,
            name=account.name,
            tier=account.tier,
            status=account.status,
            period_end=account.period_end,
            created_at=account.created_at,
        )


class AuthResponse(CamelModel):
    token: str
    user: AccountResponse
