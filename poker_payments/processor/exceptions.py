"""
Payment processor exceptions.

Every error raised by the Stripe SDK is translated into one of these before
it leaves the processor client, so routes never import ``stripe`` directly.
"""

from typing import Any


class StripeError(Exception):
    """Base exception for all processor errors.

    ``message`` carries the processor's user-facing message verbatim so it can
    be relayed to API callers unchanged.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, details={self.details})"


class StripeCustomerError(StripeError):
    """Customer lookup, search or creation failed."""

    pass


class StripePaymentError(StripeError):
    """Checkout session or payment intent operation failed."""

    pass


class StripeSubscriptionError(StripeError):
    """Subscription update failed."""

    pass


class StripeRefundError(StripeError):
    """Refund creation failed."""

    pass


class StripeWebhookError(StripeError):
    """Webhook signature verification or payload parsing failed."""

    pass


class StripeConnectionError(StripeError):
    """Unable to connect to the Stripe API."""

    pass


class StripeTimeoutError(StripeError):
    """A Stripe API call did not complete within the configured timeout."""

    pass


class StripeConfigError(StripeError):
    """Invalid configuration provided."""

    pass
