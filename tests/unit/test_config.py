"""Tests for StripeConfig and application settings."""

import pytest

from poker_payments.config import Settings
from poker_payments.processor import StripeConfig
from poker_payments.processor.config import key_mode
from poker_payments.processor.exceptions import StripeConfigError


pytestmark = pytest.mark.unit


class TestStripeConfig:
    """StripeConfig rejects bad values before any SDK call is made."""

    @pytest.mark.parametrize(
        "api_key,mode",
        [
            ("sk_test_51Poker", "test"),
            ("rk_test_51Poker", "test"),
            ("sk_live_51Poker", "live"),
            ("rk_live_51Poker", "live"),
        ],
    )
    def test_accepted_keys(self, api_key, mode):
        assert StripeConfig(api_key=api_key).mode == mode

    @pytest.mark.parametrize("api_key", [None, "", "pk_live_51Poker", "whsec_51Poker"])
    def test_key_mode_unrecognised(self, api_key):
        assert key_mode(api_key) is None

    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"api_key": ""}, "api_key is required"),
            ({"api_key": "pk_test_51Poker"}, "must be a valid Stripe"),
            ({"api_key": "whsec_51Poker"}, "must be a valid Stripe"),
            ({"api_key": "sk_test_51Poker", "timeout": 0}, "timeout must be positive"),
            ({"api_key": "sk_test_51Poker", "max_retries": -1}, "max_retries non-negative"),
        ],
    )
    def test_rejected(self, kwargs, message):
        with pytest.raises(StripeConfigError, match=message):
            StripeConfig(**kwargs)

    def test_rejected_prefix_is_reported(self):
        with pytest.raises(StripeConfigError) as exc_info:
            StripeConfig(api_key="pk_test_51Poker")
        assert exc_info.value.details == {"prefix": "pk"}

    def test_defaults(self):
        """No SDK retries and a bounded timeout by default."""
        config = StripeConfig(api_key="sk_test_51Poker")
        assert (config.webhook_secret, config.timeout, config.max_retries) == (None, 30.0, 0)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_env")
        monkeypatch.setenv("STRIPE_TIMEOUT", "5")
        monkeypatch.setenv("FRONTEND_URL", "https://poker.example.com/")

        settings = Settings(_env_file=None)

        assert settings.STRIPE_SECRET_KEY == "sk_test_env"
        assert settings.STRIPE_TIMEOUT == 5.0
        assert settings.frontend_base_url == "https://poker.example.com"
        assert settings.cors_origins_list == ["https://poker.example.com"]

    def test_cors_wildcard_without_frontend_url(self, monkeypatch):
        monkeypatch.delenv("FRONTEND_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.cors_origins_list == ["*"]

    def test_multiple_frontend_origins(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_URL", "https://a.example.com, https://b.example.com")
        settings = Settings(_env_file=None)
        assert settings.cors_origins_list == ["https://a.example.com", "https://b.example.com"]
        assert settings.frontend_base_url == "https://a.example.com"
