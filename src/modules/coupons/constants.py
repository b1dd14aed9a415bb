"""Coupon domain constants."""

from __future__ import annotations

from enum import Enum

COUPONS_DOCUMENT_KEY = "coupons"


class CouponKind(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class CouponCategory(str, Enum):
    """Promotional coupons are shared; exchange coupons belong to one customer."""

    PROMOTIONAL = "promotional"
    EXCHANGE = "exchange"


# Promotional coupons are applied before exchange coupons.
CATEGORY_PRECEDENCE = {
    CouponCategory.PROMOTIONAL: 0,
    CouponCategory.EXCHANGE: 1,
}
