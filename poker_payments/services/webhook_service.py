"""
Webhook Service.

Verifies Stripe webhook deliveries and dispatches them by event type.
Fulfilment (granting items, toggling premium) is not implemented yet; the
handlers only record that the event arrived.
"""

from typing import Any, Awaitable, Callable

import structlog

from poker_payments.processor import PaymentProcessorInterface, WebhookEvent

logger = structlog.get_logger(__name__)


class WebhookService:
    """Verify and dispatch Stripe webhook events."""

    def __init__(self, processor: PaymentProcessorInterface):
        self.processor = processor
        self._handlers: dict[str, Callable[[WebhookEvent], Awaitable[str]]] = {
            "checkout.session.completed": self._handle_checkout_completed,
            "customer.subscription.created": self._handle_subscription_created,
            "customer.subscription.deleted": self._handle_subscription_deleted,
            "payment_intent.payment_failed": self._handle_payment_failed,
        }

    @property
    def handled_event_types(self) -> list[str]:
        return list(self._handlers)

    async def handle_webhook(self, payload: bytes, signature: str) -> dict[str, Any]:
        """
        Verify and process a Stripe webhook.

        Args:
            payload: Raw request body, exactly as received
            signature: Value of the ``stripe-signature`` header

        Returns:
            Processing result with the event id, type and the action taken

        Raises:
            StripeWebhookError: If the signature or payload is invalid. Nothing
                is dispatched in that case.
        """
        event = self.processor.verify_webhook_signature(payload, signature)

        logger.info("webhook_verified", event_type=event.type, event_id=event.id)

        action = await self.dispatch(event)

        return {
            "event_id": event.id,
            "event_type": event.type,
            "action": action,
        }

    async def dispatch(self, event: WebhookEvent) -> str:
        """Run the handler for ``event.type``.

        Handler failures are logged and reported as ``"error"`` so the delivery
        is still acknowledged; Stripe retries anything that is not a 2xx.
        """
        handler = self._handlers.get(event.type)
        if handler is None:
            logger.info("unhandled_event_type", event_type=event.type, event_id=event.id)
            return "ignored"

        try:
            return await handler(event)
        except Exception as e:
            logger.error(
                "webhook_handler_failed",
                event_type=event.type,
                event_id=event.id,
                error=str(e),
                exc_info=True,
            )
            return "error"

    async def _handle_checkout_completed(self, event: WebhookEvent) -> str:
        session = event.data_object
        # TODO: grant the purchase to session["client_reference_id"] once player inventory has a store
        logger.info(
            "payment_successful",
            session_id=session.get("id"),
            user_id=session.get("client_reference_id"),
            metadata=session.get("metadata"),
        )
        return "logged"

    async def _handle_subscription_created(self, event: WebhookEvent) -> str:
        subscription = event.data_object
        logger.info(
            "subscription_created",
            subscription_id=subscription.get("id"),
            user_id=(subscription.get("metadata") or {}).get("userId"),
        )
        return "logged"

    async def _handle_subscription_deleted(self, event: WebhookEvent) -> str:
        subscription = event.data_object
        logger.info(
            "subscription_cancelled",
            subscription_id=subscription.get("id"),
            user_id=(subscription.get("metadata") or {}).get("userId"),
        )
        return "logged"

    async def _handle_payment_failed(self, event: WebhookEvent) -> str:
        payment_intent = event.data_object
        logger.warning(
            "payment_failed",
            payment_intent_id=payment_intent.get("id"),
            customer_id=payment_intent.get("customer"),
        )
        return "logged"
