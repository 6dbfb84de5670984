"""
Admin API Routes.

Refunds and purchase history. Every route requires the X-Admin-API-Key header.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from poker_payments.api.dependencies import get_payment_service, require_admin_api_key
from poker_payments.api.errors import processor_http_error
from poker_payments.processor import Refund, StripeError
from poker_payments.services.payment_service import PaymentService, PurchaseRecord

logger = structlog.get_logger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_api_key)])


class RefundRequest(BaseModel):
    """Refund a payment intent, partially when ``amount`` is given."""

    model_config = ConfigDict(populate_by_name=True)

    payment_intent_id: str = Field(..., alias="paymentIntentId", min_length=1)
    amount: Optional[int] = Field(None, gt=0, description="Partial refund in cents; omit for a full refund")


class RefundResponse(BaseModel):
    success: bool
    refund: Refund


class PurchaseHistoryResponse(BaseModel):
    purchases: list[PurchaseRecord]


@router.post(
    "/refund",
    response_model=RefundResponse,
    status_code=status.HTTP_200_OK,
    summary="Refund a payment",
)
async def refund_payment(
    request: RefundRequest,
    service: PaymentService = Depends(get_payment_service),
) -> RefundResponse:
    logger.info(
        "admin_refund_request",
        payment_intent_id=request.payment_intent_id,
        amount=request.amount,
    )

    try:
        refund = await service.refund(request.payment_intent_id, amount=request.amount)
    except StripeError as e:
        logger.error("refund_error", payment_intent_id=request.payment_intent_id, error=e.message)
        raise processor_http_error(e)

    return RefundResponse(success=True, refund=refund)


@router.get(
    "/purchases/{user_id}",
    response_model=PurchaseHistoryResponse,
    status_code=status.HTTP_200_OK,
    summary="Purchase history",
    description="List up to 100 payments made by the customer tagged with this user id.",
)
async def get_purchase_history(
    user_id: str,
    service: PaymentService = Depends(get_payment_service),
) -> PurchaseHistoryResponse:
    try:
        purchases = await service.purchase_history(user_id)
    except StripeError as e:
        logger.error("purchase_history_error", user_id=user_id, error=e.message)
        raise processor_http_error(e)

    return PurchaseHistoryResponse(purchases=purchases)
