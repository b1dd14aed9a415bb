"""Coupon service layer (Use Cases).

Validates single coupons and coupon combinations, computes discounts and
applies a coupon set to an order value.

Rules enforced here:
- At most one ``promotional`` and at most five ``exchange`` coupons per order.
- A coupon counts once per order; repeats are rejected on validation and
  dropped on application.
- ``exchange`` coupons are usable only by their owning customer.
- A coupon set never makes an order free: the charged discount leaves a
  minimum payable remainder.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

import structlog

from modules.core.dtos import ValidationResult
from modules.core.exceptions import StorageError
from modules.core.rules import DEFAULT_RULES, BusinessRules
from modules.coupons.constants import CATEGORY_PRECEDENCE, CouponCategory, CouponKind
from modules.coupons.dtos import (
    AppliedCoupon,
    Coupon,
    CouponApplication,
    CouponValidationResult,
)
from modules.coupons.repositories import CouponRepository

if TYPE_CHECKING:
    from modules.core.repositories.interfaces import IKeyValueStore

logger = structlog.get_logger(__name__)

CENT = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def calculate_discount(coupon: Coupon, order_value: Decimal) -> Decimal:
    """Discount a single coupon yields for *order_value*.

    Percentage coupons are capped at ``max_discount`` when set.  Fixed
    coupons return their flat value, even above *order_value*; the clamp
    happens only when a coupon set is applied.
    """
    if coupon.type == CouponKind.FIXED:
        return coupon.discount

    discount = (order_value * coupon.discount / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    if coupon.max_discount is not None:
        discount = min(discount, coupon.max_discount)
    return discount


def _unique(coupons: Iterable[Coupon]) -> List[Coupon]:
    """First occurrence of each coupon id, in order."""
    seen = set()
    unique = []
    for coupon in coupons:
        if coupon.id not in seen:
            seen.add(coupon.id)
            unique.append(coupon)
    return unique


class CouponService:
    """Application service for coupons.

    ``clock`` returns the current aware datetime; tests pin it.
    """

    def __init__(
        self,
        store: IKeyValueStore,
        rules: Optional[BusinessRules] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = CouponRepository(store)
        self._rules = rules or DEFAULT_RULES
        self._clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_coupons(self) -> List[Coupon]:
        return self._repo.all()

    def get_active_coupons(self) -> List[Coupon]:
        """Coupons that are active and not yet expired."""
        now = self._clock()
        return [c for c in self._repo.all() if c.is_active and c.expires_at > now]

    def get_coupon_by_code(self, code: str) -> Optional[Coupon]:
        return self._repo.get_by_code(code)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_coupon(
        self,
        code: str,
        customer_id: Optional[str] = None,
        order_value: Optional[Decimal] = None,
    ) -> CouponValidationResult:
        """Check one coupon code, stopping at the first failed rule."""
        log = logger.bind(code=code, customer_id=customer_id)

        coupon = self._repo.get_by_code(code)
        if coupon is None:
            error = "Coupon not found"
        elif not coupon.is_active:
            error = "Coupon has already been used"
        elif coupon.expires_at <= self._clock():
            error = "Coupon has expired"
        elif (
            coupon.category == CouponCategory.EXCHANGE
            and coupon.customer_id != customer_id
        ):
            error = "This coupon is not available to you"
        elif (
            coupon.min_order_value is not None
            and order_value is not None
            and order_value < coupon.min_order_value
        ):
            error = f"Minimum order value is {coupon.min_order_value:.2f}"
        else:
            log.info("coupon.validated", coupon_id=coupon.id)
            return CouponValidationResult(valid=True, coupon=coupon)

        log.info("coupon.rejected", reason=error)
        return CouponValidationResult(valid=False, error=error)

    def validate_combination(
        self,
        coupons: Iterable[Coupon],
        customer_id: Optional[str],
        order_value: Decimal,
    ) -> ValidationResult:
        """Check a coupon set as a whole, accumulating every problem."""
        rules = self._rules
        errors: List[str] = []
        warnings: List[str] = []

        coupons = list(coupons)
        unique = _unique(coupons)
        counts = Counter(c.id for c in coupons)
        for coupon in unique:
            if counts[coupon.id] > 1:
                errors.append(f"Coupon {coupon.code} applied more than once")
        coupons = unique

        promotional = [c for c in coupons if c.category == CouponCategory.PROMOTIONAL]
        exchange = [c for c in coupons if c.category == CouponCategory.EXCHANGE]

        if len(promotional) > rules.max_promotional_coupons:
            errors.append(
                f"A maximum of {rules.max_promotional_coupons} promotional "
                f"coupon per order is allowed"
            )
        if len(exchange) > rules.max_exchange_coupons:
            errors.append(
                f"A maximum of {rules.max_exchange_coupons} exchange coupons "
                f"per order is allowed"
            )
        for coupon in exchange:
            if coupon.customer_id != customer_id:
                errors.append(f"Coupon {coupon.code} belongs to another customer")

        unmet = [
            c.min_order_value
            for c in coupons
            if c.min_order_value is not None and c.min_order_value > order_value
        ]
        if unmet:
            errors.append(
                f"Order value must be at least {max(unmet):.2f} "
                f"to use the selected coupons"
            )

        total_discount = sum(
            (calculate_discount(c, order_value) for c in coupons), Decimal("0")
        )
        if coupons and total_discount >= order_value:
            warnings.append(
                "Total discount reaches the order value and will be reduced"
            )
        if order_value > 0:
            percentage = total_discount / order_value * 100
            if percentage > rules.high_discount_percentage:
                warnings.append(f"High discount: {percentage:.1f}% of the order value")

        if errors:
            logger.info(
                "coupon.combination_rejected",
                customer_id=customer_id,
                error_count=len(errors),
            )
        return ValidationResult.from_messages(errors, warnings)

    # ------------------------------------------------------------------
    # Application
    # ------------------------------------------------------------------

    def build_applied_coupon(self, coupon: Coupon, order_value: Decimal) -> AppliedCoupon:
        return AppliedCoupon(coupon=coupon, discount=calculate_discount(coupon, order_value))

    def apply_coupons(
        self, coupons: Iterable[Coupon], order_value: Decimal
    ) -> CouponApplication:
        """Apply promotional coupons first, then exchange coupons.

        Returns the unclamped sum and the discount actually chargeable,
        ``min(total, order_value - min_payable_amount)``.
        """
        ordered = sorted(_unique(coupons), key=lambda c: CATEGORY_PRECEDENCE[c.category])
        applied = [self.build_applied_coupon(c, order_value) for c in ordered]
        total = sum((a.discount for a in applied), Decimal("0"))
        adjusted = min(total, order_value - self._rules.min_payable_amount)
        return CouponApplication(
            applied=applied, total_discount=total, adjusted_discount=adjusted
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_coupon(self, coupon: Coupon) -> bool:
        """Persist a new coupon; codes are unique case-insensitively."""
        if self._repo.get_by_code(coupon.code):
            logger.warning("coupon.duplicate_code", code=coupon.code)
            return False
        coupons = self._repo.all()
        coupons.append(coupon)
        try:
            self._repo.replace_all(coupons)
        except StorageError:
            logger.exception("coupon.write_failed", coupon_id=coupon.id)
            return False
        logger.info("coupon.created", coupon_id=coupon.id, category=coupon.category.value)
        return True

    def use_coupon(self, coupon_id: str) -> bool:
        """Deactivate a coupon so it cannot be applied again."""
        coupons = self._repo.all()
        for index, coupon in enumerate(coupons):
            if coupon.id == coupon_id:
                coupons[index] = coupon.model_copy(update={"is_active": False})
                try:
                    self._repo.replace_all(coupons)
                except StorageError:
                    logger.exception("coupon.write_failed", coupon_id=coupon_id)
                    return False
                logger.info("coupon.used", coupon_id=coupon_id)
                return True
        return False

    def consume_exchange_coupons(self, applied: Iterable[AppliedCoupon]) -> List[str]:
        """Deactivate every exchange coupon in *applied*; return their ids."""
        consumed = []
        for item in applied:
            if item.category == CouponCategory.EXCHANGE and self.use_coupon(item.coupon_id):
                consumed.append(item.coupon_id)
        return consumed
