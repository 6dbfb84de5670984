"""
    poker-payments - Stripe payment server for Portfolio Poker.

Card packs, gem bundles and tournament entries are sold through Stripe
Checkout; premium is a monthly subscription. Stripe owns all payment state.

Run locally:
    STRIPE_SECRET_KEY=sk_test_... FRONTEND_URL=http://localhost:8080 poker-payments
"""

from .version import __version__

__all__ = ["__version__"]
