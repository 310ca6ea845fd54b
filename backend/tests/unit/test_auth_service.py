"""
Unit tests for AuthService and password hashing.
"""

import pytest

from travelmate.infrastructure.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidRequestError,
)
from travelmate.infrastructure.services.auth_service import (
    AuthService,
    decode_access_token,
    hash_password,
    verify_password,
)


class TestPasswordHashing:

    def test_hash_verifies(self):
        hashed = hash_password("correct horse battery staple")
        assert hashed != "correct horse battery staple"
        assert verify_password("correct horse battery staple", hashed)
        assert not verify_password("wrong password", hashed)

    def test_long_passwords_are_not_truncated(self):
        """bcrypt alone ignores bytes past 72; the pre-hash keeps them."""
        base = "a" * 72
        hashed = hash_password(base + "tail-one")
        assert not verify_password(base + "tail-two", hashed)

    def test_non_bcrypt_hash_does_not_verify(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestAuthService:

    @pytest.fixture
    def auth(self, account_repo):
        return AuthService(account_repo)

    @pytest.mark.asyncio
    async def test_register_creates_free_account(self, auth):
        account, token = await auth.register("New@Example.com", "s3cret-pass", "New User")

        assert account.email == "new@example.com"
        assert account.tier.value == "FREE"
        assert decode_access_token(token)["sub"] == account.id

    @pytest.mark.asyncio
    async def test_register_rejects_short_password(self, auth):
        with pytest.raises(InvalidRequestError):
            await auth.register("short@example.com", "1234567")

    @pytest.mark.asyncio
    async def test_register_rejects_bad_email(self, auth):
        with pytest.raises(InvalidRequestError):
            await auth.register("not-an-email", "long-enough-pass")

    @pytest.mark.asyncio
    async def test_register_duplicate_conflicts(self, auth):
        await auth.register("dup@example.com", "long-enough-pass")
        with pytest.raises(ConflictError):
            await auth.register("dup@example.com", "long-enough-pass")

    @pytest.mark.asyncio
    async def test_login(self, auth):
        registered, _ = await auth.register("login@example.com", "long-enough-pass")

        account, token = await auth.login("login@example.com", "long-enough-pass")

        assert account.id == registered.id
        assert decode_access_token(token)["sub"] == registered.id

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, auth):
        await auth.register("login@example.com", "long-enough-pass")
        with pytest.raises(AuthenticationError):
            await auth.login("login@example.com", "wrong-password")

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, auth):
        with pytest.raises(AuthenticationError):
            await auth.login("ghost@example.com", "long-enough-pass")
