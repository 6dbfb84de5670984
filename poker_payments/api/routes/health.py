"""Health check routes"""

from fastapi import APIRouter

from poker_payments.config import settings
from poker_payments.processor.config import key_mode

router = APIRouter()


@router.get("/")
async def root():
    """Liveness message kept for existing uptime checks"""
    return {"status": "Portfolio Poker Payment Server Running"}


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "poker-payments",
        "stripe": key_mode(settings.STRIPE_SECRET_KEY) or "test",
    }
