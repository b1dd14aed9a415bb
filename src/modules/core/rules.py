"""Checkout business rules.

Defaults mirror the storefront's published limits.  Deployments may
override any of them through ``CHECKOUT_*`` environment variables with
``BusinessRules.from_env()``.
"""

from __future__ import annotations

from decimal import Decimal

from decouple import config
from pydantic import BaseModel, ConfigDict


class BusinessRules(BaseModel):
    """Immutable set of checkout limits and thresholds."""

    model_config = ConfigDict(frozen=True)

    # Cart
    max_cart_lines: int = 20
    high_line_quantity: int = 10
    high_order_value: Decimal = Decimal("10000")

    # Coupons
    max_promotional_coupons: int = 1
    max_exchange_coupons: int = 5
    high_discount_percentage: Decimal = Decimal("50")
    min_payable_amount: Decimal = Decimal("0.01")

    # Payment
    max_credit_cards: int = 3
    allocation_epsilon: Decimal = Decimal("0.01")
    low_allocation_amount: Decimal = Decimal("5")
    lopsided_split_ratio: Decimal = Decimal("0.10")

    # Stock
    low_stock_threshold: int = 3

    @classmethod
    def from_env(cls) -> BusinessRules:
        """Build rules from ``CHECKOUT_*`` environment variables."""
        overrides = {}
        for name, field in cls.model_fields.items():
            cast = int if field.annotation is int else Decimal
            value = config(f"CHECKOUT_{name.upper()}", default=None)
            if value is not None:
                overrides[name] = cast(value)
        return cls(**overrides)


DEFAULT_RULES = BusinessRules()
