"""Checkout domain constants: shipping options and delivery rules."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum


class ShippingOption(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    PREMIUM = "premium"


SHIPPING_BASE_COST = {
    ShippingOption.STANDARD: Decimal("8.50"),
    ShippingOption.EXPRESS: Decimal("15.00"),
    ShippingOption.PREMIUM: Decimal("25.00"),
}

SHIPPING_BASE_DAYS = {
    ShippingOption.STANDARD: 5,
    ShippingOption.EXPRESS: 2,
    ShippingOption.PREMIUM: 1,
}

FREE_SHIPPING_SUBTOTAL = Decimal("100")

# Units above this count pay a per-unit handling surcharge.
SHIPPING_INCLUDED_UNITS = 5
SHIPPING_EXTRA_UNIT_COST = Decimal("2.00")

REMOTE_REGIONS = ("Norte", "Nordeste")
REMOTE_REGION_SURCHARGE = Decimal("5.00")
REMOTE_REGION_EXTRA_DAYS = 2
