"""
Stripe client configuration.

Kept independent of the application settings so the processor client can be
constructed directly in tests and scripts.
"""

from dataclasses import dataclass

from .exceptions import StripeConfigError

# Key prefix -> account mode. Secret (sk_) and restricted (rk_) keys only;
# publishable keys cannot call the API.
_KEY_MODES = {
    "sk_live_": "live",
    "sk_test_": "test",
    "rk_live_": "live",
    "rk_test_": "test",
}


def key_mode(api_key: str | None) -> str | None:
    """Return ``"live"`` or ``"test"`` for a Stripe API key, None if unrecognised."""
    for prefix, mode in _KEY_MODES.items():
        if api_key and api_key.startswith(prefix):
            return mode
    return None


@dataclass
class StripeConfig:
    """Credentials and call policy for StripeClient.

    Args:
        api_key: Secret (sk_*) or restricted (rk_*) key, live or test
        webhook_secret: Endpoint signing secret (whsec_*); webhooks are rejected without it
        timeout: Upper bound in seconds for a single API call
        max_retries: Network retries performed by the Stripe SDK itself
    """

    api_key: str
    webhook_secret: str | None = None
    timeout: float = 30.0
    max_retries: int = 0

    def __post_init__(self) -> None:
        if not self.api_key:
            raise StripeConfigError("api_key is required")
        if key_mode(self.api_key) is None:
            raise StripeConfigError(
                "api_key must be a valid Stripe secret key (sk_*) or restricted key (rk_*)",
                details={"prefix": self.api_key.split("_", 1)[0]},
            )
        if self.timeout <= 0 or self.max_retries < 0:
            raise StripeConfigError(
                "timeout must be positive and max_retries non-negative",
                details={"timeout": self.timeout, "max_retries": self.max_retries},
            )

    @property
    def mode(self) -> str:
        """``"live"`` or ``"test"``, from the key prefix."""
        return key_mode(self.api_key)  # type: ignore[return-value]
