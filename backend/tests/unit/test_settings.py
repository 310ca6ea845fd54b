"""
Unit tests for Pydantic Settings configuration.

Tests settings loading and validation.
"""

import pytest
from pydantic import ValidationError

from travelmate.config.settings import Settings


class TestSettings:
    """Tests for Settings configuration."""

    def test_settings_loads_from_env(self):
        """Settings should load from environment variables."""
        from travelmate.config.settings import settings

        assert settings.jwt_secret
        assert settings.stripe_webhook_secret == "whsec_test_secret"

    def test_settings_has_defaults(self):
        """Settings should have sensible defaults."""
        from travelmate.config.settings import settings

        assert settings.jwt_algorithm == "HS256"
        assert settings.stripe_api_timeout_seconds == 10.0
        assert settings.processed_event_retention_days == 30

    def test_is_production_property(self):
        from travelmate.config.settings import settings

        assert settings.is_production is False

    def test_allowed_origins_includes_localhost(self):
        from travelmate.config.settings import settings

        assert "http://localhost:5173" in settings.allowed_origins
        assert "http://localhost:3000" in settings.allowed_origins

    def test_price_table_covers_paid_tiers(self):
        s = Settings(jwt_secret="x", stripe_price_id_pro_annual="price_pro_yearly")
        assert s.price_table[("PRO", "annual")] == "price_pro_yearly"
        assert set(s.price_table) == {
            ("PRO", "monthly"),
            ("PRO", "annual"),
            ("ENTERPRISE", "monthly"),
            ("ENTERPRISE", "annual"),
        }


class TestProductionValidation:

    def test_production_requires_stripe_secrets(self, monkeypatch):
        monkeypatch.delenv("STRIPE_SECRET_KEY", raising=False)
        monkeypatch.delenv("STRIPE_WEBHOOK_SECRET", raising=False)
        with pytest.raises(ValidationError) as exc_info:
            Settings(jwt_secret="x", environment="production")
        assert "STRIPE_SECRET_KEY" in str(exc_info.value)
        assert "STRIPE_WEBHOOK_SECRET" in str(exc_info.value)

    def test_production_with_secrets_is_valid(self):
        s = Settings(
            jwt_secret="x",
            environment="production",
            stripe_secret_key="sk_live_x",
            stripe_webhook_secret="whsec_x",
        )
        assert s.is_production is True

    def test_jwt_secret_is_required(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
