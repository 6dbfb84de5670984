"""
Payment processor integration.

A narrow async interface over the Stripe API, with a concrete client and an
in-memory mock that share the same contract.

Example usage:
    from poker_payments.processor import StripeClient, StripeConfig

    client = StripeClient(
        StripeConfig(api_key="sk_test_...", webhook_secret="whsec_...")
    )
    session = await client.get_checkout_session("cs_test_...")
"""

from .client import PaymentProcessorInterface, StripeClient
from .config import StripeConfig
from .exceptions import (
    StripeConfigError,
    StripeConnectionError,
    StripeCustomerError,
    StripeError,
    StripePaymentError,
    StripeRefundError,
    StripeSubscriptionError,
    StripeTimeoutError,
    StripeWebhookError,
)
from .models import (
    CheckoutSession,
    Customer,
    PaymentIntent,
    Refund,
    Subscription,
    SubscriptionStatus,
    WebhookEvent,
)

__all__ = [
    # Client
    "StripeClient",
    "PaymentProcessorInterface",
    # Config
    "StripeConfig",
    # Exceptions
    "StripeError",
    "StripeConfigError",
    "StripeConnectionError",
    "StripeCustomerError",
    "StripePaymentError",
    "StripeRefundError",
    "StripeSubscriptionError",
    "StripeTimeoutError",
    "StripeWebhookError",
    # Models
    "CheckoutSession",
    "Customer",
    "PaymentIntent",
    "Refund",
    "Subscription",
    "SubscriptionStatus",
    "WebhookEvent",
]
