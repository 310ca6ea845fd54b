"""
Security Test Suite — JWT Authentication

Tests that the JWT verification in dependencies.py correctly:
- Rejects missing Authorization headers
- Rejects malformed tokens
- Rejects expired tokens
- Rejects tokens with invalid signatures
- Accepts properly signed tokens
"""

import time

import jwt
from fastapi import FastAPI, Depends
from fastapi.testclient import TestClient

from travelmate.api.dependencies import get_current_user_id
from travelmate.config.settings import get_settings
from travelmate.domain.subscription import Account
from travelmate.infrastructure.services.auth_service import (
    create_access_token,
    decode_access_token,
)


ACCOUNT_ID = "00000000-0000-0000-0000-000000000001"

# ---------------------------------------------------------------------------
# Minimal app that uses the real dependency
# ---------------------------------------------------------------------------

test_app = FastAPI()


@test_app.get("/protected")
async def protected_endpoint(user_id: str = Depends(get_current_user_id)):
    return {"user_id": user_id}


client = TestClient(test_app, raise_server_exceptions=False)


# ---------------------------------------------------------------------------
# Tests: rejection scenarios
# ---------------------------------------------------------------------------


class TestJWTRejection:
    """Verify that invalid/missing JWTs are rejected with 401."""

    def test_no_auth_header(self):
        resp = client.get("/protected")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Missing authorization token"

    def test_malformed_scheme(self):
        resp = client.get("/protected", headers={"Authorization": "Basic abc123"})
        assert resp.status_code == 401

    def test_garbage_token(self):
        resp = client.get("/protected", headers={"Authorization": "Bearer not.a.jwt"})
        assert resp.status_code == 401

    def test_wrong_secret(self):
        payload = {"sub": ACCOUNT_ID, "exp": int(time.time()) + 3600}
        token = jwt.encode(payload, key="some-other-secret-that-is-long-enough", algorithm="HS256")
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid or unverifiable token"

    def test_expired_token(self):
        """An expired token (even with correct secret) must be rejected."""
        payload = {"sub": ACCOUNT_ID, "exp": int(time.time()) - 60}
        token = jwt.encode(payload, get_settings().jwt_secret, algorithm="HS256")
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Token has expired"

    def test_missing_exp_rejected(self):
        token = jwt.encode({"sub": ACCOUNT_ID}, get_settings().jwt_secret, algorithm="HS256")
        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401

    def test_raw_uuid_rejected(self):
        resp = client.get("/protected", headers={"Authorization": f"Bearer {ACCOUNT_ID}"})
        assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Tests: acceptance scenarios
# ---------------------------------------------------------------------------


class TestJWTAcceptance:
    """Verify that valid JWTs are accepted."""

    def test_issued_token_round_trips(self):
        account = Account(id=ACCOUNT_ID, email="jwt@example.com", password_hash="x")
        token = create_access_token(account)

        resp = client.get("/protected", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["user_id"] == ACCOUNT_ID

    def test_issued_token_claims(self):
        account = Account(id=ACCOUNT_ID, email="jwt@example.com", password_hash="x")
        claims = decode_access_token(create_access_token(account))
        assert claims["sub"] == ACCOUNT_ID
        assert claims["email"] == "jwt@example.com"
        assert claims["exp"] > claims["iat"]
