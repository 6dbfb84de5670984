"""
In-memory payment processor.

Implements PaymentProcessorInterface against dicts instead of the Stripe API.
Every call is appended to ``calls`` as ``(operation, kwargs)`` so tests can
assert on exactly what would have been sent to Stripe.
"""

import json
import re
import uuid
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from .client import PaymentProcessorInterface
from .exceptions import (
    StripeCustomerError,
    StripePaymentError,
    StripeRefundError,
    StripeSubscriptionError,
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

T = TypeVar("T")

# metadata['key']:'value', with backslash escapes inside the value
_METADATA_QUERY = re.compile(
    r"^metadata\['(?P<key>[^']+)'\]:'(?P<value>(?:[^'\\]|\\.)*)'$"
)
_ESCAPE = re.compile(r"\\(.)")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id(prefix: str, length: int = 14) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:length]}"


def customer_factory(**overrides: Any) -> Customer:
    """Customer with a random id and email."""
    fields: dict[str, Any] = {
        "id": _new_id("cus"),
        "email": f"player-{uuid.uuid4().hex[:6]}@example.com",
        "created_at": _utcnow(),
    }
    fields.update(overrides)
    return Customer(**fields)


def subscription_factory(**overrides: Any) -> Subscription:
    """Active subscription in its first 30-day period."""
    started = _utcnow()
    fields: dict[str, Any] = {
        "id": _new_id("sub"),
        "customer_id": _new_id("cus"),
        "status": SubscriptionStatus.ACTIVE,
        "price_id": _new_id("price"),
        "current_period_start": started,
        "current_period_end": started + timedelta(days=30),
    }
    fields.update(overrides)
    return Subscription(**fields)


def checkout_session_factory(**overrides: Any) -> CheckoutSession:
    """Open, unpaid checkout session with a hosted-page URL derived from its id."""
    session_id = overrides.pop("id", _new_id("cs_test", 24))
    fields: dict[str, Any] = {
        "url": f"https://checkout.stripe.com/c/pay/{session_id}",
        "currency": "usd",
    }
    fields.update(overrides)
    return CheckoutSession(id=session_id, **fields)


def payment_intent_factory(**overrides: Any) -> PaymentIntent:
    """Succeeded payment intent for the price of an elite pack."""
    fields: dict[str, Any] = {
        "id": _new_id("pi", 24),
        "amount": 499,
        "status": "succeeded",
        "created_at": _utcnow(),
    }
    fields.update(overrides)
    return PaymentIntent(**fields)


def webhook_event_factory(**overrides: Any) -> WebhookEvent:
    fields: dict[str, Any] = {
        "id": _new_id("evt"),
        "type": "checkout.session.completed",
        "data": {"object": {}},
        "created": _utcnow(),
    }
    fields.update(overrides)
    return WebhookEvent(**fields)


def _line_items_total(line_items: list[dict[str, Any]]) -> int:
    """Sum inline ``price_data`` line items the way Checkout computes amount_total."""
    return sum(
        int((item.get("price_data") or {}).get("unit_amount", 0))
        * int(item.get("quantity", 1))
        for item in line_items
    )


class MockStripeClient(PaymentProcessorInterface):
    """In-memory stand-in for StripeClient.

    Objects live in one store keyed by model type, then id. Seed it with the
    ``add_*`` helpers or let the async operations create objects on demand:

        processor = MockStripeClient()
        processor.add_customer(customer_factory(metadata={"userId": "player-1"}))
        session = await processor.create_checkout_session(...)
        processor.simulate_checkout_paid(session.id)
    """

    def __init__(self) -> None:
        self._store: defaultdict[type, dict[str, Any]] = defaultdict(dict)
        self.calls: list[tuple[str, dict[str, Any]]] = []
        # (message, exception class override) for the next operation
        self._next_failure: tuple[str, type[Exception] | None] | None = None

    def set_should_fail(
        self,
        should_fail: bool,
        message: str = "Mock failure",
        error: type[Exception] | None = None,
    ) -> None:
        """Make the next operation raise.

        The operation raises its usual processor error unless ``error`` names
        another exception class. The failure is consumed by that one call.
        """
        self._next_failure = (message, error) if should_fail else None

    def _put(self, obj: T) -> T:
        self._store[type(obj)][obj.id] = obj  # type: ignore[attr-defined]
        return obj

    def _all(self, kind: type[T]) -> list[T]:
        return list(self._store[kind].values())

    def add_customer(self, customer: Customer) -> None:
        self._put(customer)

    def add_subscription(self, subscription: Subscription) -> None:
        self._put(subscription)

    def add_checkout_session(self, session: CheckoutSession) -> None:
        self._put(session)

    def add_payment_intent(self, payment_intent: PaymentIntent) -> None:
        self._put(payment_intent)

    @property
    def customers(self) -> list[Customer]:
        return self._all(Customer)

    def calls_to(self, operation: str) -> list[dict[str, Any]]:
        """Arguments of every recorded call to ``operation``."""
        return [kwargs for name, kwargs in self.calls if name == operation]

    def _call(self, operation: str, default_error: type[Exception], **kwargs: Any) -> None:
        """Record the call, then raise if a failure was queued for it."""
        self.calls.append((operation, kwargs))
        if self._next_failure is None:
            return
        message, error = self._next_failure
        self._next_failure = None
        raise (error or default_error)(message)

    # Checkout

    async def create_checkout_session(
        self,
        mode: str,
        line_items: list[dict[str, Any]],
        success_url: str,
        cancel_url: str,
        customer_id: str | None = None,
        client_reference_id: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CheckoutSession:
        self._call(
            "create_checkout_session",
            StripePaymentError,
            mode=mode,
            line_items=line_items,
            success_url=success_url,
            cancel_url=cancel_url,
            customer_id=customer_id,
            client_reference_id=client_reference_id,
            metadata=metadata,
        )
        return self._put(
            checkout_session_factory(
                mode=mode,
                customer_id=customer_id,
                client_reference_id=client_reference_id,
                amount_total=_line_items_total(line_items),
                metadata=dict(metadata or {}),
            )
        )

    async def get_checkout_session(self, session_id: str) -> CheckoutSession | None:
        self._call("get_checkout_session", StripePaymentError, session_id=session_id)
        return self._store[CheckoutSession].get(session_id)

    # Customers

    async def get_customer_by_email(self, email: str) -> Customer | None:
        self._call("get_customer_by_email", StripeCustomerError, email=email)
        return next((c for c in self._all(Customer) if c.email == email), None)

    async def create_customer(
        self,
        email: str,
        name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Customer:
        self._call(
            "create_customer", StripeCustomerError, email=email, name=name, metadata=metadata
        )
        return self._put(
            customer_factory(email=email, name=name, metadata=dict(metadata or {}))
        )

    async def search_customers(self, query: str, limit: int = 1) -> list[Customer]:
        """Only ``metadata['key']:'value'`` queries are understood."""
        self._call("search_customers", StripeCustomerError, query=query, limit=limit)

        match = _METADATA_QUERY.match(query)
        if not match:
            raise StripeCustomerError(
                f"Unsupported search query: {query}",
                details={"query": query},
            )

        key = match.group("key")
        value = _ESCAPE.sub(r"\1", match.group("value"))
        return [c for c in self._all(Customer) if c.metadata.get(key) == value][:limit]

    # Subscriptions

    async def cancel_subscription(
        self, subscription_id: str, at_period_end: bool = True
    ) -> Subscription:
        self._call(
            "cancel_subscription",
            StripeSubscriptionError,
            subscription_id=subscription_id,
            at_period_end=at_period_end,
        )

        subscription = self._store[Subscription].get(subscription_id)
        if subscription is None:
            raise StripeSubscriptionError(
                f"No such subscription: '{subscription_id}'",
                details={"subscription_id": subscription_id},
            )

        if at_period_end:
            subscription.cancel_at_period_end = True
        else:
            subscription.status = SubscriptionStatus.CANCELED
            subscription.canceled_at = _utcnow()
        return subscription

    # Refunds and payment intents

    async def create_refund(
        self, payment_intent_id: str, amount: int | None = None
    ) -> Refund:
        self._call(
            "create_refund",
            StripeRefundError,
            payment_intent_id=payment_intent_id,
            amount=amount,
        )

        charged = self._store[PaymentIntent].get(payment_intent_id)
        if charged is None:
            raise StripeRefundError(
                f"No such payment_intent: '{payment_intent_id}'",
                details={"payment_intent_id": payment_intent_id},
            )
        if amount is not None and amount > charged.amount:
            raise StripeRefundError(
                f"Refund amount ({amount}) is greater than charge amount ({charged.amount})",
                details={"payment_intent_id": payment_intent_id},
            )

        return self._put(
            Refund(
                id=_new_id("re", 24),
                payment_intent_id=payment_intent_id,
                amount=charged.amount if amount is None else amount,
                status="succeeded",
                currency=charged.currency,
                created_at=_utcnow(),
            )
        )

    async def list_payment_intents(
        self, customer_id: str, limit: int = 100
    ) -> list[PaymentIntent]:
        """Newest first, like the Stripe list endpoint."""
        self._call(
            "list_payment_intents", StripePaymentError, customer_id=customer_id, limit=limit
        )
        owned = [pi for pi in self._all(PaymentIntent) if pi.customer_id == customer_id]
        owned.sort(key=lambda pi: pi.created_at or _utcnow(), reverse=True)
        return owned[:limit]

    # Webhooks

    def verify_webhook_signature(self, payload: bytes, signature: str) -> WebhookEvent:
        """Accept any non-empty signature except the literal ``"invalid"``."""
        self.calls.append(
            ("verify_webhook_signature", {"payload": payload, "signature": signature})
        )

        if not signature or signature == "invalid":
            raise StripeWebhookError(
                "Invalid webhook signature: No signatures found matching the "
                "expected signature for payload"
            )

        try:
            body = json.loads(payload)
        except ValueError as e:
            raise StripeWebhookError(f"Invalid webhook payload: {e}", original_error=e)

        return webhook_event_factory(
            id=body.get("id") or _new_id("evt"),
            type=body.get("type", "test.event"),
            data=body.get("data") or {},
        )

    # Simulation

    def simulate_checkout_paid(self, session_id: str) -> CheckoutSession:
        """Complete and pay a checkout session as if the player finished Checkout.

        Sessions with a customer also get a succeeded payment intent, so the
        payment shows up in that customer's purchase history.
        """
        session = self._store[CheckoutSession].get(session_id)
        if session is None:
            raise KeyError(session_id)

        session.status = "complete"
        session.payment_status = "paid"

        if session.customer_id:
            self._put(
                payment_intent_factory(
                    amount=session.amount_total or 0,
                    customer_id=session.customer_id,
                )
            )
        return session
