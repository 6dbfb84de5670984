"""API tests for health endpoints and CORS."""

import pytest

from poker_payments.config import settings


pytestmark = pytest.mark.unit


class TestHealth:
    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"status": "Portfolio Poker Payment Server Running"}

    def test_health(self, client, monkeypatch):
        monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", "sk_test_123")

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "healthy",
            "service": "poker-payments",
            "stripe": "test",
        }

    @pytest.mark.parametrize(
        "api_key,mode",
        [("sk_live_51Poker", "live"), ("rk_live_51Poker", "live"), ("", "test")],
    )
    def test_health_reports_key_mode(self, client, monkeypatch, api_key, mode):
        monkeypatch.setattr(settings, "STRIPE_SECRET_KEY", api_key)

        assert client.get("/health").json()["stripe"] == mode

    def test_unknown_route_uses_error_body(self, client):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}
