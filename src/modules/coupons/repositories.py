"""Key-value implementation of the coupon repository."""

from __future__ import annotations

from typing import Optional

from modules.coupons.constants import COUPONS_DOCUMENT_KEY
from modules.coupons.dtos import Coupon
from modules.core.repositories.documents import ListDocumentRepository


class CouponRepository(ListDocumentRepository[Coupon]):
    """The ``coupons`` document."""

    key = COUPONS_DOCUMENT_KEY
    model = Coupon

    def get_by_code(self, code: str) -> Optional[Coupon]:
        """Code lookup ignoring case and surrounding whitespace."""
        wanted = code.strip().upper()
        return next((c for c in self.all() if c.code.strip().upper() == wanted), None)

    def get_by_id(self, coupon_id: str) -> Optional[Coupon]:
        return next((c for c in self.all() if c.id == coupon_id), None)
