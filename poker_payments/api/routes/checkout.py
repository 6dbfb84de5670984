"""
Checkout API Routes.

One-time purchases: product listing, checkout session creation and
post-redirect purchase verification.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from poker_payments.api.dependencies import get_payment_service
from poker_payments.api.errors import processor_http_error
from poker_payments.catalog import UnknownProductError, list_products
from poker_payments.processor import StripeError
from poker_payments.services.payment_service import (
    CheckoutSessionNotFoundError,
    PaymentService,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


# === Request/Response Models ===


class ProductResponse(BaseModel):
    """A catalog entry as shown to the front-end."""

    id: str
    name: str
    description: str
    amount: int = Field(..., description="Price in cents")
    quantity: int
    metadata: dict[str, str]


class ProductListResponse(BaseModel):
    products: list[ProductResponse]


class CheckoutRequest(BaseModel):
    """Request to create a checkout session for a catalog product."""

    model_config = ConfigDict(populate_by_name=True)

    product_type: Optional[str] = Field(None, alias="productType", description="Catalog product id")
    user_id: Optional[str] = Field(None, alias="userId", description="Caller's user id")


class SessionResponse(BaseModel):
    """Checkout session id and the hosted page to redirect to."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId")
    url: str


class VerifyPurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(..., alias="sessionId", min_length=1)


class PaidPurchaseResponse(BaseModel):
    """What to grant for a paid session. Missing values are returned as null."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    paid: bool = True
    user_id: Optional[str] = Field(..., alias="userId")
    product_type: Optional[str] = Field(..., alias="productType")
    product_details: dict[str, str] = Field(..., alias="productDetails")
    amount: float = Field(..., description="Total in major currency units")


class UnpaidPurchaseResponse(BaseModel):
    """Session not paid yet; ``status`` is Stripe's payment_status."""

    success: bool = False
    paid: bool = False
    status: str


# === Routes ===


@router.get(
    "/products",
    response_model=ProductListResponse,
    summary="List products",
    description="List the one-time purchase catalog.",
)
async def get_products() -> ProductListResponse:
    return ProductListResponse(
        products=[
            ProductResponse(
                id=p.id,
                name=p.name,
                description=p.description,
                amount=p.amount,
                quantity=p.quantity,
                metadata=dict(p.metadata),
            )
            for p in list_products()
        ]
    )


@router.post(
    "/create-checkout-session",
    response_model=SessionResponse,
    status_code=status.HTTP_200_OK,
    summary="Create checkout session",
    description="Create a Stripe checkout session for a one-time catalog purchase.",
)
async def create_checkout_session(
    request: CheckoutRequest,
    service: PaymentService = Depends(get_payment_service),
) -> SessionResponse:
    """Create a one-time payment checkout session."""
    logger.info(
        "create_checkout_request",
        product_type=request.product_type,
        user_id=request.user_id,
    )

    try:
        session = await service.create_checkout_session(
            product_type=request.product_type,
            user_id=request.user_id,
        )
    except UnknownProductError as e:
        logger.warning("unknown_product_requested", product_type=e.product_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except StripeError as e:
        logger.error("checkout_session_error", error=e.message, error_type=type(e).__name__)
        raise processor_http_error(e)

    return SessionResponse(session_id=session.id, url=session.url)


@router.post(
    "/verify-purchase",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Verify purchase",
    description=(
        "Confirm with Stripe that a checkout session was paid. Paid sessions return "
        "{success, paid, userId, productType, productDetails, amount}; unpaid ones "
        "return {success, paid, status}."
    ),
)
async def verify_purchase(
    request: VerifyPurchaseRequest,
    service: PaymentService = Depends(get_payment_service),
) -> PaidPurchaseResponse | UnpaidPurchaseResponse:
    """
    Verify payment after the front-end redirect.

    The success redirect URL is visible to the client, so reaching it proves
    nothing; only Stripe's payment status does.
    """
    try:
        result = await service.verify_purchase(request.session_id)
    except CheckoutSessionNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except StripeError as e:
        logger.error("verification_error", session_id=request.session_id, error=e.message)
        raise processor_http_error(e)

    if not result.paid:
        return UnpaidPurchaseResponse(status=result.status)

    return PaidPurchaseResponse(
        user_id=result.user_id,
        product_type=result.product_type,
        product_details=result.product_details,
        amount=result.amount,
    )
