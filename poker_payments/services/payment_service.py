"""
Payment Service.

Builds checkout and subscription sessions from the catalog, verifies
purchases after redirect, and backs the admin refund/history utilities.
Stripe is the source of truth for every entity; nothing is stored locally.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import structlog

from poker_payments.catalog import PREMIUM_PLAN, get_product
from poker_payments.processor import (
    CheckoutSession,
    Customer,
    PaymentProcessorInterface,
    Refund,
    StripeCustomerError,
    StripeError,
    StripeTimeoutError,
    Subscription,
)

logger = structlog.get_logger(__name__)

# Stripe substitutes the real id into this placeholder on redirect
SESSION_ID_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"
PURCHASE_HISTORY_LIMIT = 100


class CheckoutSessionNotFoundError(LookupError):
    """Raised when Stripe has no checkout session with the given id."""

    def __init__(self, session_id: str):
        super().__init__(f"No such checkout session: '{session_id}'")
        self.session_id = session_id


def to_major_units(amount: int | None) -> float:
    """Convert cents to dollars (or the equivalent for other currencies)."""
    return (amount or 0) / 100


def _escape_search_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass
class PurchaseVerification:
    """Outcome of checking a checkout session after redirect."""

    paid: bool
    status: str
    user_id: str | None = None
    product_type: str | None = None
    product_details: dict[str, str] = field(default_factory=dict)
    amount: float | None = None


@dataclass
class PurchaseRecord:
    """One payment intent as shown in purchase history."""

    id: str
    amount: float
    status: str
    created: datetime | None


class PaymentService:
    """
    Service for forwarding purchase operations to the payment processor.

    One instance per request is fine; the service holds no mutable state.
    """

    def __init__(
        self,
        processor: PaymentProcessorInterface,
        frontend_url: str,
        currency: str = "usd",
    ):
        """
        Initialize payment service.

        Args:
            processor: Payment processor client
            frontend_url: Base URL of the front-end, used for redirects
            currency: ISO currency code for checkout line items
        """
        self.processor = processor
        self.frontend_url = frontend_url.rstrip("/")
        self.currency = currency

    @property
    def success_url(self) -> str:
        return f"{self.frontend_url}/success?session_id={SESSION_ID_PLACEHOLDER}"

    @property
    def cancel_url(self) -> str:
        return f"{self.frontend_url}/portfolio-poker.html"

    async def create_checkout_session(
        self, product_type: str | None, user_id: str | None
    ) -> CheckoutSession:
        """
        Create a one-time payment session for a catalog product.

        Raises:
            UnknownProductError: If the product is not in the catalog. Stripe is
                not called in that case.
            StripeError: If Stripe rejects the session.
        """
        product = get_product(product_type)

        logger.info(
            "creating_product_checkout",
            product_type=product.id,
            user_id=user_id,
            amount=product.amount,
        )

        line_items: list[dict[str, Any]] = [
            {
                "price_data": {
                    "currency": self.currency,
                    "product_data": {
                        "name": product.name,
                        "description": product.description,
                    },
                    "unit_amount": product.amount,
                },
                "quantity": product.quantity,
            }
        ]

        return await self.processor.create_checkout_session(
            mode="payment",
            line_items=line_items,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
            client_reference_id=user_id,
            metadata=dict(product.metadata),
        )

    async def _resolve_customer(self, user_id: str, email: str) -> Customer:
        """Find the customer for ``email`` or create one tagged with ``user_id``.

        Lookup and creation are not atomic; concurrent calls for the same email
        can create two customers.
        """
        customer = await self.processor.get_customer_by_email(email)
        if customer:
            logger.info("reusing_customer", customer_id=customer.id, user_id=user_id)
            return customer

        return await self.processor.create_customer(
            email=email,
            metadata={"userId": user_id},
        )

    async def create_subscription_session(
        self, user_id: str, email: str
    ) -> CheckoutSession:
        """
        Create a monthly premium subscription session.

        Raises:
            StripeCustomerError: With a generic message if the customer could
                not be found or created.
            StripeError: If Stripe rejects the session itself.
        """
        try:
            customer = await self._resolve_customer(user_id, email)
        except StripeTimeoutError:
            raise
        except StripeError as e:
            logger.error("customer_resolution_failed", user_id=user_id, error=e.message)
            raise StripeCustomerError(
                "Failed to create customer",
                details={"user_id": user_id},
                original_error=e,
            ) from e

        line_items: list[dict[str, Any]] = [
            {
                "price_data": {
                    "currency": self.currency,
                    "product_data": {
                        "name": PREMIUM_PLAN.name,
                        "description": PREMIUM_PLAN.description,
                    },
                    "unit_amount": PREMIUM_PLAN.amount,
                    "recurring": {"interval": PREMIUM_PLAN.interval},
                },
                "quantity": 1,
            }
        ]

        return await self.processor.create_checkout_session(
            mode="subscription",
            line_items=line_items,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
            customer_id=customer.id,
            metadata={"userId": user_id, "type": PREMIUM_PLAN.metadata_type},
        )

    async def cancel_subscription(self, subscription_id: str) -> Subscription:
        """Schedule cancellation at the end of the current billing period."""
        return await self.processor.cancel_subscription(
            subscription_id, at_period_end=True
        )

    async def verify_purchase(self, session_id: str) -> PurchaseVerification:
        """
        Check with Stripe whether a checkout session was actually paid.

        Raises:
            CheckoutSessionNotFoundError: If Stripe does not know the session.
        """
        session = await self.processor.get_checkout_session(session_id)
        if session is None:
            raise CheckoutSessionNotFoundError(session_id)

        if session.payment_status != "paid":
            logger.info(
                "purchase_not_paid",
                session_id=session_id,
                payment_status=session.payment_status,
            )
            return PurchaseVerification(paid=False, status=session.payment_status)

        metadata = dict(session.metadata or {})
        logger.info(
            "purchase_verified",
            session_id=session_id,
            user_id=session.client_reference_id,
            product_type=metadata.get("type"),
        )
        return PurchaseVerification(
            paid=True,
            status=session.payment_status,
            user_id=session.client_reference_id,
            product_type=metadata.get("type"),
            product_details=metadata,
            amount=to_major_units(session.amount_total),
        )

    async def refund(self, payment_intent_id: str, amount: int | None = None) -> Refund:
        """Refund a payment; the full amount when ``amount`` is None."""
        return await self.processor.create_refund(payment_intent_id, amount=amount)

    async def purchase_history(self, user_id: str) -> list[PurchaseRecord]:
        """List payments for the customer tagged with ``user_id``; empty if none."""
        customers = await self.processor.search_customers(
            f"metadata['userId']:'{_escape_search_value(user_id)}'",
            limit=1,
        )
        if not customers:
            logger.info("purchase_history_no_customer", user_id=user_id)
            return []

        intents = await self.processor.list_payment_intents(
            customers[0].id, limit=PURCHASE_HISTORY_LIMIT
        )
        return [
            PurchaseRecord(
                id=pi.id,
                amount=to_major_units(pi.amount),
                status=pi.status,
                created=pi.created_at,
            )
            for pi in intents
        ]
