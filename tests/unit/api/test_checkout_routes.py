"""API tests for product listing, checkout and purchase verification."""

import pytest

from poker_payments.processor import StripePaymentError, StripeTimeoutError
from poker_payments.processor.mock import MockStripeClient, checkout_session_factory


pytestmark = pytest.mark.unit


class TestProducts:
    """Tests for GET /products."""

    def test_lists_catalog(self, client):
        response = client.get("/products")

        assert response.status_code == 200
        products = {p["id"]: p for p in response.json()["products"]}
        assert set(products) == {
            "elite-pack",
            "tournament-entry",
            "gems-1000",
            "gems-500",
            "gems-100",
        }
        assert products["gems-500"]["amount"] == 399
        assert products["elite-pack"]["metadata"]["tier"] == "elite"


class TestCreateCheckoutSession:
    """Tests for POST /create-checkout-session."""

    def test_creates_session(self, client, mock_client: MockStripeClient):
        response = client.post(
            "/create-checkout-session",
            json={"productType": "elite-pack", "userId": "player-1"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["sessionId"].startswith("cs_test_")
        assert data["url"].startswith("https://checkout.stripe.com/")

        call = mock_client.calls_to("create_checkout_session")[0]
        assert call["line_items"][0]["price_data"]["unit_amount"] == 499
        assert call["success_url"].startswith("https://poker.example.com/success?session_id=")

    def test_unknown_product(self, client, mock_client: MockStripeClient):
        response = client.post(
            "/create-checkout-session",
            json={"productType": "diamond-pack", "userId": "player-1"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid product type"}
        assert mock_client.calls == []

    def test_missing_product_type(self, client, mock_client: MockStripeClient):
        response = client.post("/create-checkout-session", json={"userId": "player-1"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid product type"}
        assert mock_client.calls == []

    def test_stripe_error_message_is_relayed(self, client, mock_client: MockStripeClient):
        mock_client.set_should_fail(True, "Invalid API Key provided: sk_test_****")

        response = client.post(
            "/create-checkout-session",
            json={"productType": "gems-100", "userId": "player-1"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Invalid API Key provided: sk_test_****"}

    def test_stripe_timeout(self, client, mock_client: MockStripeClient):
        mock_client.set_should_fail(
            True, "Stripe did not respond within 30 seconds", error=StripeTimeoutError
        )

        response = client.post(
            "/create-checkout-session",
            json={"productType": "gems-100", "userId": "player-1"},
        )

        assert response.status_code == 504
        assert response.json() == {"error": "Stripe did not respond within 30 seconds"}

    def test_malformed_body(self, client):
        response = client.post(
            "/create-checkout-session",
            content=b"not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"


class TestVerifyPurchase:
    """Tests for POST /verify-purchase."""

    def test_paid(self, client, mock_client: MockStripeClient):
        created = client.post(
            "/create-checkout-session",
            json={"productType": "gems-1000", "userId": "player-1"},
        ).json()
        mock_client.simulate_checkout_paid(created["sessionId"])

        response = client.post("/verify-purchase", json={"sessionId": created["sessionId"]})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "paid": True,
            "userId": "player-1",
            "productType": "currency",
            "productDetails": {"type": "currency", "gems": "1000"},
            "amount": 9.99,
        }

    def test_paid_without_user_or_type_keeps_nulls(self, client, mock_client: MockStripeClient):
        session = checkout_session_factory(
            client_reference_id=None,
            metadata={},
            amount_total=99,
            status="complete",
            payment_status="paid",
        )
        mock_client.add_checkout_session(session)

        response = client.post("/verify-purchase", json={"sessionId": session.id})

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "paid": True,
            "userId": None,
            "productType": None,
            "productDetails": {},
            "amount": 0.99,
        }

    def test_unpaid(self, client, mock_client: MockStripeClient):
        session = checkout_session_factory(payment_status="unpaid")
        mock_client.add_checkout_session(session)

        response = client.post("/verify-purchase", json={"sessionId": session.id})

        assert response.status_code == 200
        assert response.json() == {"success": False, "paid": False, "status": "unpaid"}

    def test_unknown_session(self, client):
        response = client.post("/verify-purchase", json={"sessionId": "cs_missing"})

        assert response.status_code == 404
        assert "cs_missing" in response.json()["error"]

    def test_missing_session_id(self, client):
        response = client.post("/verify-purchase", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_stripe_error(self, client, mock_client: MockStripeClient):
        mock_client.set_should_fail(True, "Something went wrong", error=StripePaymentError)

        response = client.post("/verify-purchase", json={"sessionId": "cs_any"})

        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong"}
