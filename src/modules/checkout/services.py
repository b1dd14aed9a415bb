"""Checkout pipeline (Use Cases).

Orchestrates cart, coupon and payment validation into one pass/fail
answer, then commits: decrements stock, persists the order in
``pending`` and consumes exchange coupons.

Ordering guarantees:
- ``validate_checkout`` runs every sub-validator and concatenates their
  errors and warnings; it never stops at the first failing one.
- ``commit`` writes nothing until every validation has passed and the
  order snapshot is built.  Stock is decremented first (all-or-nothing);
  if the order cannot be stored afterwards, the decrement is reversed.
- Reservations named in the request stop holding stock once the order
  is stored.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

import structlog

from modules.cart.services import CartService, CartValidator, calculate_subtotal
from modules.catalog.dtos import CartLine
from modules.catalog.services import StockService
from modules.checkout.dtos import CheckoutRequest, CheckoutResult, OrderPricing
from modules.checkout.shipping import calculate_delivery_time, calculate_shipping_cost
from modules.core.dtos import ValidationResult
from modules.core.exceptions import StorageError
from modules.core.rules import DEFAULT_RULES, BusinessRules
from modules.coupons.dtos import AppliedCoupon
from modules.coupons.services import CENT, CouponService
from modules.customers.services import CustomerDirectory
from modules.orders.dtos import Order
from modules.orders.services import OrderService
from modules.payments.dtos import PaymentInfo
from modules.payments.services import PaymentService
from shared.infrastructure.bus import InMemoryEventBus

if TYPE_CHECKING:
    from modules.core.repositories.interfaces import IKeyValueStore
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CheckoutService:
    """Application service for the checkout pipeline.

    All collaborators share one store and one event bus.  They can be
    passed in explicitly; otherwise they are built from *store*.
    """

    def __init__(
        self,
        store: IKeyValueStore,
        event_bus: Optional[IEventBus] = None,
        rules: Optional[BusinessRules] = None,
        clock: Callable[[], datetime] = _utcnow,
        stock_service: Optional[StockService] = None,
        order_service: Optional[OrderService] = None,
        coupon_service: Optional[CouponService] = None,
    ) -> None:
        self._bus = event_bus or InMemoryEventBus()
        self._rules = rules or DEFAULT_RULES
        self._clock = clock

        self.cart_validator = CartValidator(self._rules)
        self.cart = CartService(store, self._bus)
        self.customers = CustomerDirectory(store)
        self.payments = PaymentService(store, self._rules)
        self.coupons = coupon_service or CouponService(store, self._rules, clock=clock)
        self.stock = stock_service or StockService(
            store, self._bus, self._rules, clock=clock
        )
        self.orders = order_service or OrderService(
            store, self.stock, self._bus, clock=clock
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_checkout(
        self,
        lines: Iterable[CartLine],
        applied_coupons: Iterable[AppliedCoupon],
        payment_info: PaymentInfo,
        customer_id: Optional[str],
    ) -> ValidationResult:
        """Run cart, coupon, payment and customer checks; report everything."""
        lines = list(lines)
        coupons = [applied.coupon for applied in applied_coupons]
        subtotal = calculate_subtotal(lines)

        result = ValidationResult.merge(
            self.cart_validator.validate_cart(lines),
            self.coupons.validate_combination(coupons, customer_id, subtotal),
            self.payments.validate_payment(payment_info, customer_id),
            ValidationResult.from_messages(self.customers.validate_customer(customer_id)),
        )

        log = logger.bind(customer_id=customer_id, line_count=len(lines))
        if result.valid:
            log.info("checkout.validated", warning_count=len(result.warnings))
        else:
            log.info("checkout.validation_failed", errors=result.errors)
        return result

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self, request: CheckoutRequest) -> CheckoutResult:
        """Validate, decrement stock and persist a ``pending`` order."""
        log = logger.bind(customer_id=request.customer_id)

        validation = self.validate_checkout(
            request.lines,
            request.applied_coupons,
            request.payment_info,
            request.customer_id,
        )
        errors = list(validation.errors)
        warnings = list(validation.warnings)

        subtotal = calculate_subtotal(request.lines)
        pricing = self.price_order(request, subtotal)
        errors.extend(self._recheck_coupons(request, subtotal))
        errors.extend(
            self.customers.validate_shipping_address(
                request.customer_id, request.shipping_address
            )
        )
        if (
            abs(request.payment_info.total_amount - pricing.total)
            > self._rules.allocation_epsilon
        ):
            errors.append(f"Payment total does not match order total {pricing.total:.2f}")

        if errors:
            log.info("checkout.commit_rejected", errors=errors)
            return CheckoutResult(success=False, errors=errors, warnings=warnings)

        order = self._build_order(request, pricing)
        stock = self.stock.decrease_stock(request.lines, request.customer_id)
        if not stock.success:
            log.warning("checkout.stock_rejected", errors=stock.errors)
            return CheckoutResult(
                success=False,
                errors=stock.errors,
                warnings=warnings + stock.warnings,
            )

        try:
            order = self.orders.create_order(order)
        except StorageError:
            log.exception("checkout.order_not_stored", order_id=order.id)
            compensation = self.stock.increase_stock(request.lines)
            if not compensation.success:
                log.error("checkout.stock_not_restored", errors=compensation.errors)
            return CheckoutResult(
                success=False,
                errors=["The order could not be saved, please try again"],
                warnings=warnings,
            )

        if request.reservation_ids:
            self.stock.confirm_reservation(request.reservation_ids, order.id)
        consumed = self.coupons.consume_exchange_coupons(order.applied_coupons)
        if request.clear_cart:
            self.cart.clear()

        log.info(
            "checkout.committed",
            order_id=order.id,
            total=str(order.total),
            consumed_coupons=consumed,
        )
        return CheckoutResult(success=True, order=order, warnings=warnings)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def price_order(
        self, request: CheckoutRequest, subtotal: Optional[Decimal] = None
    ) -> OrderPricing:
        """Order figures: ``subtotal - adjusted discount + shipping``."""
        if subtotal is None:
            subtotal = calculate_subtotal(request.lines)
        application = self.coupons.apply_coupons(
            [applied.coupon for applied in request.applied_coupons], subtotal
        )
        discount = max(application.adjusted_discount, Decimal("0")).quantize(CENT)
        item_count = sum(line.quantity for line in request.lines)
        region = request.shipping_address.region_hint
        shipping = calculate_shipping_cost(
            subtotal, item_count, request.shipping_option, region
        ).quantize(CENT)
        return OrderPricing(
            subtotal=subtotal.quantize(CENT),
            discount=discount,
            undiscounted_total=application.total_discount,
            shipping=shipping,
            total=(subtotal - discount + shipping).quantize(CENT),
            applied=application.applied,
            delivery=calculate_delivery_time(request.shipping_option, region),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _recheck_coupons(self, request: CheckoutRequest, subtotal: Decimal) -> List[str]:
        """Coupons may have been used or expired since they were applied."""
        errors = []
        for applied in request.applied_coupons:
            check = self.coupons.validate_coupon(applied.code, request.customer_id, subtotal)
            if not check.valid:
                errors.append(f"Coupon {applied.code}: {check.error}")
        return errors

    def _build_order(self, request: CheckoutRequest, pricing: OrderPricing) -> Order:
        created_at = self._clock()
        return Order(
            id=self.orders.generate_order_id(),
            customer_id=request.customer_id,
            items=request.lines,
            subtotal=pricing.subtotal,
            discount_amount=pricing.discount,
            shipping_cost=pricing.shipping,
            total=pricing.total,
            shipping_address=request.shipping_address,
            payment_info=request.payment_info,
            applied_coupons=pricing.applied,
            created_at=created_at,
            estimated_delivery=created_at
            + timedelta(days=pricing.delivery.estimated_days),
            notes=request.notes,
        )
