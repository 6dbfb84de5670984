"""
Product catalog.

One-time purchases and the premium subscription plan. Amounts are in cents;
metadata values are strings because that is all Stripe metadata can hold.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


class UnknownProductError(ValueError):
    """Raised when a product id is not in the catalog."""

    def __init__(self, product_id: str | None):
        super().__init__("Invalid product type")
        self.product_id = product_id


@dataclass(frozen=True)
class Product:
    """A purchasable catalog entry."""

    id: str
    name: str
    description: str
    amount: int  # in cents
    quantity: int = 1
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SubscriptionPlan:
    """A recurring plan sold through subscription-mode checkout."""

    name: str
    description: str
    amount: int  # in cents
    interval: str = "month"
    metadata_type: str = "premium_subscription"


def _product(id: str, name: str, description: str, amount: int, **metadata: str) -> Product:
    return Product(
        id=id,
        name=name,
        description=description,
        amount=amount,
        metadata=MappingProxyType(metadata),
    )


PRODUCTS: Mapping[str, Product] = MappingProxyType(
    {
        p.id: p
        for p in (
            _product(
                "elite-pack",
                "Elite Card Pack",
                "10 Cards with 1 Epic Guaranteed",
                499,
                type="card_pack",
                tier="elite",
                cards="10",
            ),
            _product(
                "tournament-entry",
                "Tournament Entry",
                "Enter tournament with 1000 gem prize pool",
                99,
                type="tournament",
                entry="standard",
            ),
            _product(
                "gems-1000",
                "1000 Gems Bundle",
                "1000 premium gems for card purchases",
                999,
                type="currency",
                gems="1000",
            ),
            _product(
                "gems-500",
                "500 Gems Bundle",
                "500 premium gems (20% bonus)",
                399,
                type="currency",
                gems="500",
            ),
            _product(
                "gems-100",
                "100 Gems Bundle",
                "100 premium gems starter pack",
                99,
                type="currency",
                gems="100",
            ),
        )
    }
)

PREMIUM_PLAN = SubscriptionPlan(
    name="Portfolio Poker Premium",
    description="Unlock all cards, 2x gems, no ads",
    amount=499,
)


def get_product(product_id: str | None) -> Product:
    """Look up a catalog entry, raising UnknownProductError if absent."""
    product = PRODUCTS.get(product_id) if product_id else None
    if product is None:
        raise UnknownProductError(product_id)
    return product


def list_products() -> list[Product]:
    """All catalog entries in display order."""
    return list(PRODUCTS.values())
