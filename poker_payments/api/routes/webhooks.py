"""
Stripe webhook route.

The body is read raw: signature verification is over the exact bytes Stripe
sent, so this route must never declare a parsed body model.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Header, Request, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from poker_payments.api.dependencies import get_webhook_service
from poker_payments.processor import StripeWebhookError
from poker_payments.services.webhook_service import WebhookService

logger = structlog.get_logger(__name__)

router = APIRouter()


class WebhookResponse(BaseModel):
    """Acknowledgement of a verified webhook delivery."""

    received: bool


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    status_code=status.HTTP_200_OK,
    summary="Handle Stripe webhook",
    description="Receive Stripe webhook events. Authentication is done via Stripe signature verification.",
    responses={400: {"content": {"text/plain": {}}, "description": "Signature verification failed"}},
)
async def stripe_webhook(
    request: Request,
    service: WebhookService = Depends(get_webhook_service),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
):
    payload = await request.body()

    logger.info(
        "webhook_received",
        payload_bytes=len(payload),
        has_signature=bool(stripe_signature),
    )

    try:
        result = await service.handle_webhook(payload, stripe_signature or "")
    except StripeWebhookError as e:
        logger.error("webhook_verification_failed", error=e.message)
        return PlainTextResponse(
            f"Webhook Error: {e.message}",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    logger.info(
        "webhook_processed",
        event_id=result["event_id"],
        event_type=result["event_type"],
        action=result["action"],
    )
    return WebhookResponse(received=True)
