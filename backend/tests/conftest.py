"""
Test configuration and fixtures for TravelMate.

Provides shared fixtures for unit and integration tests.
"""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test_secret")
os.environ.setdefault("ENVIRONMENT", "testing")

from datetime import datetime, timezone
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from travelmate.domain.subscription import CheckoutSession


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
async def db(tmp_path, monkeypatch):
    """Fresh file-backed SQLite database wired into get_session_context."""
    from travelmate.infrastructure.db import database

    manager = database.DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'travelmate.db'}")
    monkeypatch.setattr(database, "_db_manager", manager)
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def account_repo(db):
    from travelmate.infrastructure.db.repositories import AccountRepository
    return AccountRepository()


@pytest.fixture
def payment_repo(db):
    from travelmate.infrastructure.db.repositories import PaymentRepository
    return PaymentRepository()


@pytest.fixture
def event_repo(db):
    from travelmate.infrastructure.db.repositories import WebhookEventRepository
    return WebhookEventRepository()


@pytest.fixture
async def account(account_repo):
    """A freshly registered FREE account."""
    return await account_repo.create("traveler@example.com", "not-a-real-hash", "Ana Traveler")


# =============================================================================
# Mock Fixtures
# =============================================================================

@pytest.fixture
def mock_gateway():
    """Mock for StripeService."""
    mock = MagicMock()
    mock.create_customer = AsyncMock(return_value="cus_test")
    mock.create_checkout_session = AsyncMock(
        return_value=CheckoutSession(
            session_id="cs_test_123",
            url="https://checkout.stripe.com/c/pay/cs_test_123",
        )
    )
    mock.create_portal_session = AsyncMock(
        return_value="https://billing.stripe.com/p/session/test_123"
    )
    mock.get_subscription = AsyncMock(
        return_value={
            "id": "sub_test",
            "status": "active",
            "current_period_end": int(datetime(2025, 3, 1, tzinfo=timezone.utc).timestamp()),
        }
    )
    return mock


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app(mock_gateway):
    """FastAPI application with the Stripe gateway replaced by a mock."""
    from travelmate.main import app
    from travelmate.infrastructure.payments import get_stripe_service

    app.dependency_overrides[get_stripe_service] = lambda: mock_gateway
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """Get synchronous test client (no database)."""
    return TestClient(app)


@pytest.fixture
async def async_client(app, db) -> AsyncGenerator[AsyncClient, None]:
    """Get async test client bound to the test database."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers(account):
    """Bearer header for the ``account`` fixture."""
    from travelmate.infrastructure.services.auth_service import create_access_token

    return {"Authorization": f"Bearer {create_access_token(account)}"}
