"""Main FastAPI application for the Portfolio Poker payment server"""

from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from poker_payments import __version__
from poker_payments.api.errors import register_exception_handlers
from poker_payments.api.routes import admin, checkout, health, subscriptions, webhooks
from poker_payments.config import settings
from poker_payments.logging_config import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    configure_logging(settings.LOG_LEVEL, json_logs=settings.APP_ENV != "development")
    logger.info("Portfolio Poker payment server starting up", env=settings.APP_ENV)

    if not settings.STRIPE_SECRET_KEY:
        logger.warning("STRIPE_SECRET_KEY is not set, every Stripe call will fail")
    if settings.cors_origins_list == ["*"]:
        logger.warning("FRONTEND_URL is not set, accepting cross-origin requests from any origin")
    if not settings.STRIPE_WEBHOOK_SECRET:
        logger.warning("STRIPE_WEBHOOK_SECRET is not set, every webhook will be rejected")
    if not settings.ADMIN_API_KEY:
        logger.warning("ADMIN_API_KEY is not set, admin endpoints are disabled")

    yield

    logger.info("Portfolio Poker payment server shutting down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Portfolio Poker Payments API",
        description="Stripe checkout, subscriptions and webhooks for Portfolio Poker",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentialed responses for a wildcard origin
        allow_credentials=origins != ["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Admin-API-Key"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(checkout.router, tags=["checkout"])
    app.include_router(subscriptions.router, tags=["subscriptions"])
    app.include_router(webhooks.router, tags=["webhooks"])
    app.include_router(admin.router, prefix="/admin", tags=["admin"])

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    configure_logging(settings.LOG_LEVEL, json_logs=settings.APP_ENV != "development")
    logger.info("Starting payment server", port=settings.PORT)
    logger.info("Webhook endpoint", url=f"http://localhost:{settings.PORT}/webhook")
    uvicorn.run("poker_payments.main:app", host="0.0.0.0", port=settings.PORT)


if __name__ == "__main__":
    run()
