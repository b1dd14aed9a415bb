"""Shipping cost and delivery window rules."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from modules.checkout.constants import (
    FREE_SHIPPING_SUBTOTAL,
    REMOTE_REGION_EXTRA_DAYS,
    REMOTE_REGION_SURCHARGE,
    REMOTE_REGIONS,
    SHIPPING_BASE_COST,
    SHIPPING_BASE_DAYS,
    SHIPPING_EXTRA_UNIT_COST,
    SHIPPING_INCLUDED_UNITS,
    ShippingOption,
)


class DeliveryEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_days: int
    max_days: int
    estimated_days: int


def _option(value: Optional[str]) -> ShippingOption:
    try:
        return ShippingOption(value)
    except ValueError:
        return ShippingOption.STANDARD


def _is_remote(location: Optional[str]) -> bool:
    return bool(location) and any(region in location for region in REMOTE_REGIONS)


def calculate_shipping_cost(
    subtotal: Decimal,
    item_count: int,
    shipping_option: Optional[str] = ShippingOption.STANDARD,
    location: Optional[str] = None,
) -> Decimal:
    """Shipping for an order; free from ``FREE_SHIPPING_SUBTOTAL`` upwards.

    Unknown options are priced as standard.
    """
    if subtotal >= FREE_SHIPPING_SUBTOTAL:
        return Decimal("0.00")

    cost = SHIPPING_BASE_COST[_option(shipping_option)]
    if item_count > SHIPPING_INCLUDED_UNITS:
        cost += (item_count - SHIPPING_INCLUDED_UNITS) * SHIPPING_EXTRA_UNIT_COST
    if _is_remote(location):
        cost += REMOTE_REGION_SURCHARGE
    return max(cost, Decimal("0.00"))


def calculate_delivery_time(
    shipping_option: Optional[str] = ShippingOption.STANDARD,
    location: Optional[str] = None,
) -> DeliveryEstimate:
    estimated = SHIPPING_BASE_DAYS[_option(shipping_option)]
    if _is_remote(location):
        estimated += REMOTE_REGION_EXTRA_DAYS
    return DeliveryEstimate(
        min_days=max(1, estimated - 1),
        max_days=estimated + 2,
        estimated_days=estimated,
    )
