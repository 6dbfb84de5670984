"""FastAPI dependencies: processor client, services and the admin key gate."""

import hmac
from functools import lru_cache
from typing import Optional

import structlog
from fastapi import Depends, Header, HTTPException, status

from poker_payments.config import settings
from poker_payments.processor import (
    PaymentProcessorInterface,
    StripeClient,
    StripeConfig,
    StripeConfigError,
)
from poker_payments.services.payment_service import PaymentService
from poker_payments.services.webhook_service import WebhookService

logger = structlog.get_logger(__name__)


@lru_cache
def _stripe_client() -> StripeClient:
    return StripeClient(
        StripeConfig(
            api_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            timeout=settings.STRIPE_TIMEOUT,
            max_retries=settings.STRIPE_MAX_RETRIES,
        )
    )


def get_processor() -> PaymentProcessorInterface:
    """Build the Stripe client on first use so importing the app needs no key.

    A missing or malformed STRIPE_SECRET_KEY answers 503. Failed builds are
    not cached, so the next request retries with the current settings.
    """
    try:
        return _stripe_client()
    except StripeConfigError as e:
        logger.error("payment_processor_not_configured", error=e.message)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment processor is not configured",
        )


def get_payment_service(
    processor: PaymentProcessorInterface = Depends(get_processor),
) -> PaymentService:
    return PaymentService(
        processor,
        frontend_url=settings.frontend_base_url,
        currency=settings.CURRENCY,
    )


def get_webhook_service(
    processor: PaymentProcessorInterface = Depends(get_processor),
) -> WebhookService:
    return WebhookService(processor)


def require_admin_api_key(
    x_admin_api_key: Optional[str] = Header(None, alias="X-Admin-API-Key"),
) -> None:
    """Require a valid X-Admin-API-Key header for admin routes."""
    if not settings.ADMIN_API_KEY:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin endpoints are not configured",
        )

    if not x_admin_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Admin-API-Key header",
        )

    if not hmac.compare_digest(x_admin_api_key.encode(), settings.ADMIN_API_KEY.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin API key",
        )
