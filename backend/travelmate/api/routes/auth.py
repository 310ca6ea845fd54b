"""
Auth API Routes

Account registration, login and self-service profile endpoints.
"""

import logging

from fastapi import APIRouter, Depends, status

from travelmate.api.dependencies import get_auth_service, get_current_account
from travelmate.domain.auth import (
    AccountResponse,
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UpdateProfileRequest,
)
from travelmate.domain.subscription import Account
from travelmate.infrastructure.services.auth_service import AuthService


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
):
    """Create a FREE account. Duplicate emails are rejected with 409."""
    account, token = await auth.register(request.email, request.password, request.name)
    return AuthResponse(token=token, user=AccountResponse.from_account(account))


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
):
    account, token = await auth.login(request.email, request.password)
    return AuthResponse(token=token, user=AccountResponse.from_account(account))


@router.get("/me", response_model=AccountResponse)
async def me(account: Account = Depends(get_current_account)):
    return AccountResponse.from_account(account)


@router.put("/profile", response_model=AccountResponse)
async def update_profile(
    request: UpdateProfileRequest,
    account: Account = Depends(get_current_account),
    auth: AuthService = Depends(get_auth_service),
):
    """Update name and/or email. A taken email is rejected with 409."""
    updated = await auth.update_profile(account.id, name=request.name, email=request.email)
    return AccountResponse.from_account(updated)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    account: Account = Depends(get_current_account),
    auth: AuthService = Depends(get_auth_service),
):
    await auth.change_password(account.id, request.current_password, request.new_password)
    return MessageResponse(message="Password changed successfully")


@router.post("/logout", response_model=MessageResponse)
async def logout(account: Account = Depends(get_current_account)):
    """Tokens are stateless; the client discards its copy."""
    logger.info(f"Account {account.id} logged out")
    return MessageResponse(message="Logout successful")
