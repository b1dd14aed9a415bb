"""Checkout DTOs.

- ``CheckoutRequest``: everything the shopper selected, as validated
  objects (cart lines, coupons, payment split, shipping address).
- ``CheckoutResult``: outcome of ``commit``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from modules.catalog.dtos import CartLine
from modules.checkout.constants import ShippingOption
from modules.checkout.shipping import DeliveryEstimate
from modules.coupons.dtos import AppliedCoupon
from modules.customers.dtos import Address
from modules.orders.dtos import Order
from modules.payments.dtos import PaymentInfo


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_id: str
    lines: List[CartLine]
    applied_coupons: List[AppliedCoupon] = Field(default_factory=list)
    payment_info: PaymentInfo
    shipping_address: Address
    shipping_option: ShippingOption = ShippingOption.STANDARD
    notes: str = ""
    clear_cart: bool = True
    reservation_ids: List[str] = Field(default_factory=list)


class CheckoutResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    order: Optional[Order] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class OrderPricing(BaseModel):
    """Figures an order will be created with.

    ``discount`` is the chargeable (clamped) discount;
    ``undiscounted_total`` is the plain sum of coupon discounts, for display.
    """

    model_config = ConfigDict(frozen=True)

    subtotal: Decimal
    discount: Decimal
    undiscounted_total: Decimal
    shipping: Decimal
    total: Decimal
    applied: List[AppliedCoupon] = Field(default_factory=list)
    delivery: DeliveryEstimate
