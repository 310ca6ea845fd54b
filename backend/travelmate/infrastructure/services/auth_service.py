"""
Authentication Service

Email/password accounts with bcrypt hashes and HS256 access tokens.
"""

import base64
import hashlib
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from travelmate.config.settings import Settings, get_settings
from travelmate.domain.subscription import Account
from travelmate.infrastructure.db.repositories.account_repository import AccountRepository
from travelmate.infrastructure.exceptions import AuthenticationError, InvalidRequestError


logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8


def _prepare_password(password: str) -> bytes:
    """Pre-hash with SHA-256 so passwords past bcrypt's 72-byte limit still count."""
    return base64.b64encode(hashlib.sha256(password.encode()).digest())


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_prepare_password(password), password_hash.encode())
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(account: Account, settings: Optional[Settings] = None) -> str:
    """Issue a signed access token whose subject is the account id."""
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account.id,
        "email": account.email,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> dict:
    """
    Verify and decode an access token.

    Raises:
        jwt.ExpiredSignatureError: token past its exp
        jwt.InvalidTokenError: bad signature, algorithm or claims
    """
    settings = settings or get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["exp", "sub"]},
    )


class AuthService:
    """Registration and login on top of the account repository."""

    def __init__(self, accounts: AccountRepository, settings: Optional[Settings] = None):
        self._accounts = accounts
        self._settings = settings or get_settings()

    async def register(self, email: str, password: str, name: Optional[str] = None) -> tuple[Account, str]:
        """
        Create a FREE account and issue its first token.

        Raises:
            InvalidRequestError: malformed email or short password
            ConflictError: email already registered
        """
        email = email.strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise InvalidRequestError("Invalid email format")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise InvalidRequestError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        account = await self._accounts.create(email, hash_password(password), name)
        logger.info(f"Registered account {account.id}")
        return account, create_access_token(account, self._settings)

    async def login(self, email: str, password: str) -> tuple[Account, str]:
        """
        Raises:
            AuthenticationError: unknown email or wrong password
        """
        account = await self._accounts.get_by_email(email)
        if account is None or not verify_password(password, account.password_hash):
            logger.info("Failed login attempt")
            raise AuthenticationError("Invalid email or password")

        return account, create_access_token(account, self._settings)

    async def update_profile(
        self,
        account_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Account:
        """
        Raises:
            InvalidRequestError: malformed email
            ConflictError: email already used by another account
        """
        if email is not None:
            email = email.strip().lower()
            if not EMAIL_PATTERN.match(email):
                raise InvalidRequestError("Invalid email format")
        if name is None and email is None:
            return await self._accounts.get(account_id)

        return await self._accounts.update_profile(account_id, name=name, email=email)

    async def change_password(self, account_id: str, current_password: str, new_password: str) -> None:
        """
        Replace the password after checking the current one.

        Raises:
            AuthenticationError: current password is incorrect
            InvalidRequestError: new password too short
        """
        account = await self._accounts.get(account_id)
        if not verify_password(current_password, account.password_hash):
            raise AuthenticationError("Current password is incorrect")
        if len(new_password) < MIN_PASSWORD_LENGTH:
            raise InvalidRequestError(
                f"New password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        await self._accounts.set_password_hash(account_id, hash_password(new_password))
