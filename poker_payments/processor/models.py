"""
Processor data models.

Plain dataclasses mirroring the subset of each Stripe object this service
reads. Amounts are always in minor currency units (cents).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SubscriptionStatus(str, Enum):
    """Standard Stripe subscription statuses."""

    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    TRIALING = "trialing"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"


@dataclass
class Customer:
    """Stripe customer."""

    id: str
    email: str | None
    name: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None


@dataclass
class Subscription:
    """Stripe subscription."""

    id: str
    customer_id: str
    # Raw string for statuses newer than this enum
    status: SubscriptionStatus | str
    price_id: str
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    canceled_at: datetime | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class CheckoutSession:
    """Stripe Checkout session."""

    id: str
    url: str
    mode: str = "payment"
    customer_id: str | None = None
    customer_email: str | None = None
    client_reference_id: str | None = None
    amount_total: int | None = None  # in cents
    currency: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    status: str = "open"
    payment_status: str = "unpaid"


@dataclass
class PaymentIntent:
    """Stripe payment intent."""

    id: str
    amount: int  # in cents
    status: str
    currency: str = "usd"
    customer_id: str | None = None
    created_at: datetime | None = None


@dataclass
class Refund:
    """Stripe refund."""

    id: str
    payment_intent_id: str
    amount: int  # in cents
    status: str
    currency: str = "usd"
    created_at: datetime | None = None


@dataclass
class WebhookEvent:
    """Verified Stripe webhook event."""

    id: str
    type: str
    data: dict[str, Any]
    created: datetime | None
    livemode: bool = False

    @property
    def data_object(self) -> dict[str, Any]:
        """The object the event describes (session, subscription, ...)."""
        return self.data.get("object") or {}
