"""
Subscription API Routes.

Premium subscription checkout and cancellation.
"""

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from poker_payments.api.dependencies import get_payment_service
from poker_payments.api.errors import processor_http_error
from poker_payments.api.routes.checkout import SessionResponse
from poker_payments.processor import StripeError, Subscription
from poker_payments.services.payment_service import PaymentService

logger = structlog.get_logger(__name__)

router = APIRouter()


class CreateSubscriptionRequest(BaseModel):
    """Request to start a premium subscription checkout."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    email: str = Field(..., min_length=3, description="Customer email, used to find or create the Stripe customer")


class CancelSubscriptionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str = Field(..., alias="subscriptionId", min_length=1)


class CancelSubscriptionResponse(BaseModel):
    success: bool
    subscription: Subscription


@router.post(
    "/create-subscription",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Create subscription checkout",
    description="Find or create the Stripe customer, then open a monthly premium checkout session.",
)
async def create_subscription(
    request: CreateSubscriptionRequest,
    service: PaymentService = Depends(get_payment_service),
) -> SessionResponse:
    logger.info("create_subscription_request", user_id=request.user_id)

    try:
        session = await service.create_subscription_session(
            user_id=request.user_id,
            email=request.email,
        )
    except StripeError as e:
        logger.error("subscription_error", user_id=request.user_id, error=e.message)
        raise processor_http_error(e)

    return SessionResponse(session_id=session.id, url=session.url)


@router.post(
    "/cancel-subscription",
    response_model=CancelSubscriptionResponse,
    status_code=status.HTTP_200_OK,
    summary="Cancel subscription",
    description="Cancel a subscription at the end of the current billing period.",
)
async def cancel_subscription(
    request: CancelSubscriptionRequest,
    service: PaymentService = Depends(get_payment_service),
) -> CancelSubscriptionResponse:
    try:
        subscription = await service.cancel_subscription(request.subscription_id)
    except StripeError as e:
        logger.error(
            "cancellation_error",
            subscription_id=request.subscription_id,
            error=e.message,
        )
        raise processor_http_error(e)

    return CancelSubscriptionResponse(success=True, subscription=subscription)
