"""Shared test fixtures."""

import os

import pytest
from fastapi.testclient import TestClient

from poker_payments.api.dependencies import get_processor
from poker_payments.config import settings
from poker_payments.main import app
from poker_payments.processor import StripeClient, StripeConfig
from poker_payments.processor.mock import MockStripeClient
from poker_payments.services.payment_service import PaymentService
from poker_payments.services.webhook_service import WebhookService

FRONTEND_URL = "https://poker.example.com"
ADMIN_API_KEY = "test-admin-key"


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without network access")
    config.addinivalue_line("markers", "e2e: tests against the real Stripe test API")


@pytest.fixture
def mock_client() -> MockStripeClient:
    """Fresh in-memory processor per test."""
    return MockStripeClient()


@pytest.fixture
def test_config() -> StripeConfig:
    """Config with a syntactically valid but unusable key."""
    return StripeConfig(
        api_key="sk_test_51PokerUnitTests",
        webhook_secret="whsec_poker_unit_tests",
    )


@pytest.fixture
def payment_service(mock_client: MockStripeClient) -> PaymentService:
    return PaymentService(mock_client, frontend_url=FRONTEND_URL)


@pytest.fixture
def webhook_service(mock_client: MockStripeClient) -> WebhookService:
    return WebhookService(mock_client)


@pytest.fixture
def client(mock_client: MockStripeClient, monkeypatch):
    """Test client wired to the mock processor, with admin access configured."""
    monkeypatch.setattr(settings, "FRONTEND_URL", FRONTEND_URL)
    monkeypatch.setattr(settings, "ADMIN_API_KEY", ADMIN_API_KEY)
    app.dependency_overrides[get_processor] = lambda: mock_client
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"X-Admin-API-Key": ADMIN_API_KEY}


@pytest.fixture
def live_config() -> StripeConfig | None:
    """Config for the live Stripe test account.

    Returns None if STRIPE_TEST_API_KEY is not set.
    """
    api_key = os.environ.get("STRIPE_TEST_API_KEY")
    if not api_key:
        return None

    return StripeConfig(
        api_key=api_key,
        webhook_secret=os.environ.get("STRIPE_TEST_WEBHOOK_SECRET"),
    )


@pytest.fixture
def live_client(live_config: StripeConfig | None) -> StripeClient | None:
    """StripeClient talking to the live Stripe test account.

    Returns None if STRIPE_TEST_API_KEY is not set.
    """
    if not live_config:
        return None
    return StripeClient(live_config)
