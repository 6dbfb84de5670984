"""
Stripe API client.

The SDK is synchronous, so every call runs in the default executor and is
bounded by ``StripeConfig.timeout``. SDK errors are translated into the
exceptions in ``.exceptions`` before they leave this module.
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

import stripe
import structlog

from .config import StripeConfig
from .exceptions import (
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

logger = structlog.get_logger(__name__)


class PaymentProcessorInterface(ABC):
    """Abstract interface for the payment processor operations this service uses."""

    # Checkout operations
    @abstractmethod
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
        """Open a hosted Checkout page for the given line items."""
        ...

    @abstractmethod
    async def get_checkout_session(self, session_id: str) -> CheckoutSession | None:
        """Fetch a checkout session, or None if Stripe has no such id."""
        ...

    # Customer operations
    @abstractmethod
    async def get_customer_by_email(self, email: str) -> Customer | None:
        """Get the first customer with an exact email match."""
        ...

    @abstractmethod
    async def create_customer(
        self,
        email: str,
        name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Customer:
        """Create a customer, tagging it with ``metadata``."""
        ...

    @abstractmethod
    async def search_customers(self, query: str, limit: int = 1) -> list[Customer]:
        """Search customers with Stripe's search query language."""
        ...

    # Subscription operations
    @abstractmethod
    async def cancel_subscription(
        self, subscription_id: str, at_period_end: bool = True
    ) -> Subscription:
        """Cancel at period end, or immediately when ``at_period_end`` is False."""
        ...

    # Refund operations
    @abstractmethod
    async def create_refund(
        self, payment_intent_id: str, amount: int | None = None
    ) -> Refund:
        """Refund a payment intent, fully when ``amount`` is None."""
        ...

    # Payment intent operations
    @abstractmethod
    async def list_payment_intents(
        self, customer_id: str, limit: int = 100
    ) -> list[PaymentIntent]:
        """List payment intents for a customer."""
        ...

    # Webhook operations
    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> WebhookEvent:
        """Check the ``stripe-signature`` header against the raw body and parse the event."""
        ...


def _from_timestamp(value: int | None) -> datetime | None:
    """Convert a Stripe unix timestamp to an aware UTC datetime."""
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _plain(value: Any) -> Any:
    """Recursively turn SDK objects into plain dicts and lists.

    Recent ``stripe`` releases no longer subclass ``dict`` for API resources,
    so ``.get`` is unavailable on them. Everything read below goes through
    this first.
    """
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    to_dict = getattr(value, "to_dict", None)
    if callable(to_dict):
        return _plain(to_dict())
    return value


def _expandable_id(value: Any) -> str | None:
    """Return the id of a field that Stripe may return expanded or as a string."""
    if value is None or isinstance(value, str):
        return value
    return _plain(value).get("id")


def _subscription_status(value: str) -> SubscriptionStatus | str:
    try:
        return SubscriptionStatus(value)
    except ValueError:
        # Stripe adds statuses over time; keep the raw value
        logger.warning("unknown_subscription_status", status=value)
        return value


def _processor_message(error: stripe.StripeError) -> str:
    """The message Stripe intends for the caller, without request-id noise."""
    return error.user_message or str(error)


class StripeClient(PaymentProcessorInterface):
    """PaymentProcessorInterface backed by the official Stripe SDK."""

    def __init__(self, config: StripeConfig):
        """Configure the global Stripe SDK from ``config``.

        Args:
            config: API key, webhook secret, timeout and retry policy
        """
        self.config = config
        stripe.api_key = config.api_key
        stripe.max_network_retries = config.max_retries

        logger.info(
            "stripe_client_ready",
            mode=config.mode,
            timeout=config.timeout,
        )

    def _to_customer(self, stripe_customer: Any) -> Customer:
        stripe_customer = _plain(stripe_customer)
        return Customer(
            id=stripe_customer["id"],
            email=stripe_customer.get("email"),
            name=stripe_customer.get("name"),
            metadata=dict(stripe_customer.get("metadata") or {}),
            created_at=_from_timestamp(stripe_customer.get("created")),
        )

    def _to_subscription(self, stripe_sub: Any) -> Subscription:
        stripe_sub = _plain(stripe_sub)
        items = (stripe_sub.get("items") or {}).get("data") or []
        first_item = items[0] if items else {}
        price_id = _expandable_id(first_item.get("price")) or ""

        # Newer API versions moved the billing period onto the subscription item
        period_start = stripe_sub.get("current_period_start") or first_item.get(
            "current_period_start"
        )
        period_end = stripe_sub.get("current_period_end") or first_item.get(
            "current_period_end"
        )

        return Subscription(
            id=stripe_sub["id"],
            customer_id=_expandable_id(stripe_sub.get("customer")) or "",
            status=_subscription_status(stripe_sub["status"]),
            price_id=price_id,
            current_period_start=_from_timestamp(period_start),
            current_period_end=_from_timestamp(period_end),
            cancel_at_period_end=bool(stripe_sub.get("cancel_at_period_end")),
            canceled_at=_from_timestamp(stripe_sub.get("canceled_at")),
            metadata=dict(stripe_sub.get("metadata") or {}),
        )

    def _to_checkout_session(self, stripe_session: Any) -> CheckoutSession:
        stripe_session = _plain(stripe_session)
        customer_email = stripe_session.get("customer_email")
        customer_details = stripe_session.get("customer_details")
        if customer_details and customer_details.get("email"):
            customer_email = customer_details["email"]

        return CheckoutSession(
            id=stripe_session["id"],
            url=stripe_session.get("url") or "",
            mode=stripe_session.get("mode") or "payment",
            customer_id=_expandable_id(stripe_session.get("customer")),
            customer_email=customer_email,
            client_reference_id=stripe_session.get("client_reference_id"),
            amount_total=stripe_session.get("amount_total"),
            currency=stripe_session.get("currency"),
            metadata=dict(stripe_session.get("metadata") or {}),
            status=stripe_session.get("status") or "open",
            payment_status=stripe_session.get("payment_status") or "unpaid",
        )

    def _to_payment_intent(self, stripe_intent: Any) -> PaymentIntent:
        stripe_intent = _plain(stripe_intent)
        return PaymentIntent(
            id=stripe_intent["id"],
            amount=stripe_intent.get("amount") or 0,
            status=stripe_intent["status"],
            currency=stripe_intent.get("currency") or "usd",
            customer_id=_expandable_id(stripe_intent.get("customer")),
            created_at=_from_timestamp(stripe_intent.get("created")),
        )

    def _to_refund(self, stripe_refund: Any) -> Refund:
        stripe_refund = _plain(stripe_refund)
        return Refund(
            id=stripe_refund["id"],
            payment_intent_id=_expandable_id(stripe_refund.get("payment_intent")) or "",
            amount=stripe_refund.get("amount") or 0,
            status=stripe_refund.get("status") or "pending",
            currency=stripe_refund.get("currency") or "usd",
            created_at=_from_timestamp(stripe_refund.get("created")),
        )

    async def _run_in_executor(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Run a synchronous Stripe API call in an executor, bounded by the timeout."""
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, lambda: func(*args, **kwargs)),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(
                "stripe_call_timed_out",
                operation=getattr(func, "__qualname__", repr(func)),
                timeout=self.config.timeout,
            )
            raise StripeTimeoutError(
                f"Stripe did not respond within {self.config.timeout:g} seconds",
                details={"timeout": self.config.timeout},
                original_error=e,
            )

    def _translate(
        self,
        error: stripe.StripeError,
        error_class: type[StripeError],
        details: dict[str, Any],
    ) -> StripeError:
        """Map an SDK error onto our hierarchy, keeping Stripe's message."""
        if isinstance(error, stripe.APIConnectionError):
            error_class = StripeConnectionError
        return error_class(
            _processor_message(error),
            details=details,
            original_error=error,
        )

    # Checkout operations

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
        """Open a hosted Checkout page for the given line items."""
        try:
            logger.info(
                "creating_checkout_session",
                mode=mode,
                customer_id=customer_id,
                client_reference_id=client_reference_id,
            )

            session_data: dict[str, Any] = {
                "mode": mode,
                "payment_method_types": ["card"],
                "line_items": line_items,
                "success_url": success_url,
                "cancel_url": cancel_url,
                "metadata": metadata or {},
            }
            if customer_id:
                session_data["customer"] = customer_id
            if client_reference_id:
                session_data["client_reference_id"] = client_reference_id

            stripe_session = await self._run_in_executor(
                stripe.checkout.Session.create, **session_data
            )

            session = self._to_checkout_session(stripe_session)
            logger.info("checkout_session_created", session_id=session.id, mode=mode)
            return session

        except stripe.StripeError as e:
            logger.error("checkout_session_create_failed", mode=mode, error=str(e))
            raise self._translate(e, StripePaymentError, {"mode": mode})

    async def get_checkout_session(self, session_id: str) -> CheckoutSession | None:
        """Fetch a checkout session, or None if Stripe has no such id."""
        try:
            logger.debug("retrieving_checkout_session", session_id=session_id)

            stripe_session = await self._run_in_executor(
                stripe.checkout.Session.retrieve, session_id
            )

            return self._to_checkout_session(stripe_session)

        except stripe.InvalidRequestError as e:
            if e.http_status == 404:
                logger.warning("checkout_session_not_found", session_id=session_id)
                return None
            logger.error(
                "checkout_session_retrieve_failed", session_id=session_id, error=str(e)
            )
            raise self._translate(e, StripePaymentError, {"session_id": session_id})
        except stripe.StripeError as e:
            logger.error(
                "checkout_session_retrieve_failed", session_id=session_id, error=str(e)
            )
            raise self._translate(e, StripePaymentError, {"session_id": session_id})

    # Customer operations

    async def get_customer_by_email(self, email: str) -> Customer | None:
        """Get the first customer with an exact email match."""
        try:
            logger.debug("listing_stripe_customers_by_email", email=email)

            result = await self._run_in_executor(
                stripe.Customer.list,
                email=email,
                limit=1,
            )

            customers = _plain(result)["data"]
            if customers:
                return self._to_customer(customers[0])

            return None

        except stripe.StripeError as e:
            logger.error("stripe_customer_list_failed", email=email, error=str(e))
            raise self._translate(e, StripeCustomerError, {"email": email})

    async def create_customer(
        self,
        email: str,
        name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> Customer:
        """Create a customer, tagging it with ``metadata``."""
        try:
            logger.info("creating_stripe_customer", email=email)

            customer_data: dict[str, Any] = {
                "email": email,
                "metadata": metadata or {},
            }
            if name:
                customer_data["name"] = name

            stripe_customer = await self._run_in_executor(
                stripe.Customer.create, **customer_data
            )

            customer = self._to_customer(stripe_customer)
            logger.info("stripe_customer_created", customer_id=customer.id, email=email)
            return customer

        except stripe.StripeError as e:
            logger.error("stripe_customer_create_failed", email=email, error=str(e))
            raise self._translate(e, StripeCustomerError, {"email": email})

    async def search_customers(self, query: str, limit: int = 1) -> list[Customer]:
        """Search customers with Stripe's search query language."""
        try:
            logger.debug("searching_stripe_customers", query=query, limit=limit)

            result = await self._run_in_executor(
                stripe.Customer.search,
                query=query,
                limit=limit,
            )

            return [self._to_customer(c) for c in _plain(result)["data"]]

        except stripe.StripeError as e:
            logger.error("stripe_customer_search_failed", query=query, error=str(e))
            raise self._translate(e, StripeCustomerError, {"query": query})

    # Subscription operations

    async def cancel_subscription(
        self, subscription_id: str, at_period_end: bool = True
    ) -> Subscription:
        """Cancel at period end, or immediately when ``at_period_end`` is False."""
        try:
            logger.info(
                "canceling_subscription",
                subscription_id=subscription_id,
                at_period_end=at_period_end,
            )

            if at_period_end:
                stripe_sub = await self._run_in_executor(
                    stripe.Subscription.modify,
                    subscription_id,
                    cancel_at_period_end=True,
                )
            else:
                stripe_sub = await self._run_in_executor(
                    stripe.Subscription.cancel,
                    subscription_id,
                )

            subscription = self._to_subscription(stripe_sub)
            logger.info("subscription_canceled", subscription_id=subscription_id)
            return subscription

        except stripe.StripeError as e:
            logger.error(
                "subscription_cancel_failed", subscription_id=subscription_id, error=str(e)
            )
            raise self._translate(
                e, StripeSubscriptionError, {"subscription_id": subscription_id}
            )

    # Refund operations

    async def create_refund(
        self, payment_intent_id: str, amount: int | None = None
    ) -> Refund:
        """Refund a payment intent, fully when ``amount`` is None."""
        try:
            logger.info(
                "creating_refund",
                payment_intent_id=payment_intent_id,
                amount=amount,
            )

            refund_data: dict[str, Any] = {"payment_intent": payment_intent_id}
            if amount is not None:
                refund_data["amount"] = amount

            stripe_refund = await self._run_in_executor(
                stripe.Refund.create, **refund_data
            )

            refund = self._to_refund(stripe_refund)
            logger.info(
                "refund_created",
                refund_id=refund.id,
                payment_intent_id=payment_intent_id,
                amount=refund.amount,
            )
            return refund

        except stripe.StripeError as e:
            logger.error(
                "refund_create_failed",
                payment_intent_id=payment_intent_id,
                error=str(e),
            )
            raise self._translate(
                e, StripeRefundError, {"payment_intent_id": payment_intent_id}
            )

    # Payment intent operations

    async def list_payment_intents(
        self, customer_id: str, limit: int = 100
    ) -> list[PaymentIntent]:
        """List payment intents for a customer."""
        try:
            logger.debug("listing_payment_intents", customer_id=customer_id)

            result = await self._run_in_executor(
                stripe.PaymentIntent.list,
                customer=customer_id,
                limit=limit,
            )

            intents = [self._to_payment_intent(pi) for pi in _plain(result)["data"]]
            logger.debug(
                "payment_intents_listed",
                customer_id=customer_id,
                count=len(intents),
            )
            return intents

        except stripe.StripeError as e:
            logger.error(
                "list_payment_intents_failed", customer_id=customer_id, error=str(e)
            )
            raise self._translate(e, StripePaymentError, {"customer_id": customer_id})

    # Webhook operations

    def verify_webhook_signature(self, payload: bytes, signature: str) -> WebhookEvent:
        """Check the ``stripe-signature`` header against the raw body and parse the event."""
        if not self.config.webhook_secret:
            raise StripeWebhookError(
                "Webhook secret not configured",
                details={"has_secret": False},
            )

        try:
            logger.debug("verifying_webhook")

            event = _plain(
                stripe.Webhook.construct_event(
                    payload, signature, self.config.webhook_secret
                )
            )

            # A signed event missing optional fields is still accepted
            webhook_event = WebhookEvent(
                id=event.get("id") or "",
                type=event.get("type") or "unknown",
                data=event.get("data") or {},
                created=_from_timestamp(event.get("created")),
                livemode=bool(event.get("livemode")),
            )

            logger.info(
                "webhook_verified_by_stripe",
                event_type=webhook_event.type,
                event_id=webhook_event.id,
            )
            return webhook_event

        except ValueError as e:
            logger.error("webhook_payload_invalid", error=str(e))
            raise StripeWebhookError(
                f"Invalid webhook payload: {e}",
                original_error=e,
            )
        except stripe.SignatureVerificationError as e:
            logger.error("webhook_signature_invalid", error=str(e))
            raise StripeWebhookError(
                f"Invalid webhook signature: {_processor_message(e)}",
                original_error=e,
            )
