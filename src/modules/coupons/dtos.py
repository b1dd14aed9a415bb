"""Coupon DTOs.

- ``Coupon``: a persisted discount code.
- ``AppliedCoupon``: a coupon together with the discount it yields for
  one specific order value.  Never persisted on its own, only as part of
  an order snapshot.
- ``CouponValidationResult`` / ``CouponApplication``: service outputs.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from modules.coupons.constants import CouponCategory, CouponKind


class Coupon(BaseModel):
    """Immutable coupon record.

    Validates:
    - ``exchange`` coupons must name their owning customer.
    - ``max_discount`` only applies to ``percentage`` coupons.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    discount: Decimal = Field(ge=0)
    type: CouponKind
    category: CouponCategory
    expires_at: datetime
    is_active: bool = True
    customer_id: Optional[str] = None
    min_order_value: Optional[Decimal] = Field(default=None, ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def exchange_coupons_have_an_owner(self):
        if self.category == CouponCategory.EXCHANGE and not self.customer_id:
            raise ValueError("Exchange coupons must belong to a customer.")
        return self

    @model_validator(mode="after")
    def max_discount_only_for_percentage(self):
        if self.max_discount is not None and self.type != CouponKind.PERCENTAGE:
            raise ValueError("max_discount is only meaningful for percentage coupons.")
        return self


class AppliedCoupon(BaseModel):
    """A coupon snapshot plus its discount for one order value."""

    model_config = ConfigDict(frozen=True)

    coupon: Coupon
    discount: Decimal

    @property
    def coupon_id(self) -> str:
        return self.coupon.id

    @property
    def code(self) -> str:
        return self.coupon.code

    @property
    def category(self) -> CouponCategory:
        return self.coupon.category


class CouponValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    valid: bool
    coupon: Optional[Coupon] = None
    error: Optional[str] = None


class CouponApplication(BaseModel):
    """Coupons in application order with both discount figures.

    ``total_discount`` is the plain sum and may be displayed;
    ``adjusted_discount`` keeps a minimum payable remainder and is the
    one to charge.
    """

    model_config = ConfigDict(frozen=True)

    applied: List[AppliedCoupon] = Field(default_factory=list)
    total_discount: Decimal = Decimal("0")
    adjusted_discount: Decimal = Decimal("0")
