"""Configuration settings for the Portfolio Poker payment server"""

from pydantic_settings import BaseSettings
from typing import List, Optional
import os


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"
    # Hosting platforms may provide PORT dynamically
    PORT: int = int(os.getenv("PORT", "3000"))

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_TIMEOUT: float = 30.0  # seconds per API call
    STRIPE_MAX_RETRIES: int = 0
    CURRENCY: str = "usd"

    # Front-end base URL, used for checkout redirects and as the CORS origin
    FRONTEND_URL: str = ""

    # Admin endpoints are disabled while this is empty
    ADMIN_API_KEY: str = ""

    @property
    def cors_origins_list(self) -> List[str]:
        """Allowed CORS origins; wildcard when no front-end URL is configured"""
        if not self.FRONTEND_URL:
            return ["*"]
        return [origin.strip().rstrip("/") for origin in self.FRONTEND_URL.split(",") if origin.strip()]

    @property
    def frontend_base_url(self) -> str:
        """First configured front-end URL, without a trailing slash"""
        return self.FRONTEND_URL.split(",")[0].strip().rstrip("/")

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
