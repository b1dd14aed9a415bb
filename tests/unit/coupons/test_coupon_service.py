"""Unit tests for CouponService.

Covers:
- Single-coupon validation order (first failing rule wins).
- Combination limits and ownership, accumulated.
- Discount arithmetic: percentage cap, fixed values, clamped total.
- Persistence commands: add, use, consume exchange coupons.
- A coupon counts once per order.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from modules.coupons.constants import CouponCategory, CouponKind
from modules.coupons.services import CouponService, calculate_discount

pytestmark = pytest.mark.unit

CUSTOMER_ID = "cust-1"


@pytest.fixture()
def service(store, clock):
    return CouponService(store, clock=clock)


class TestValidateCoupon:
    def test_valid_code_is_case_insensitive(self, service, seed_coupons, make_coupon):
        seed_coupons(make_coupon("PROMO10"))
        result = service.validate_coupon("promo10", CUSTOMER_ID, Decimal("100"))
        assert result.valid is True
        assert result.coupon.code == "PROMO10"

    def test_stored_code_with_surrounding_whitespace(
        self, service, seed_coupons, make_coupon
    ):
        seed_coupons(make_coupon(" promo10 "))
        result = service.validate_coupon("PROMO10", CUSTOMER_ID, Decimal("100"))
        assert result.valid is True
        assert service.get_coupon_by_code("  Promo10") is not None

    def test_unknown_code(self, service):
        result = service.validate_coupon("NOPE")
        assert result.valid is False
        assert result.error == "Coupon not found"

    def test_used_coupon(self, service, seed_coupons, make_coupon):
        seed_coupons(make_coupon("USED", is_active=False))
        assert service.validate_coupon("USED").error == "Coupon has already been used"

    def test_expired_coupon(self, service, seed_coupons, make_coupon, clock):
        seed_coupons(make_coupon("OLD", expires_at=clock() - timedelta(days=1)))
        assert service.validate_coupon("OLD").error == "Coupon has expired"

    def test_used_is_reported_before_expired(self, service, seed_coupons, make_coupon, clock):
        seed_coupons(
            make_coupon("BOTH", is_active=False, expires_at=clock() - timedelta(days=1))
        )
        assert service.validate_coupon("BOTH").error == "Coupon has already been used"

    def test_exchange_coupon_of_another_customer(self, service, seed_coupons, make_coupon):
        seed_coupons(
            make_coupon("TRADE", category=CouponCategory.EXCHANGE, customer_id="other")
        )
        result = service.validate_coupon("TRADE", CUSTOMER_ID)
        assert result.error == "This coupon is not available to you"

    def test_minimum_order_value(self, service, seed_coupons, make_coupon):
        seed_coupons(make_coupon("BIG", min_order_value=Decimal("200")))
        result = service.validate_coupon("BIG", CUSTOMER_ID, Decimal("150"))
        assert result.error == "Minimum order value is 200.00"

    def test_minimum_ignored_without_order_value(self, service, seed_coupons, make_coupon):
        seed_coupons(make_coupon("BIG", min_order_value=Decimal("200")))
        assert service.validate_coupon("BIG", CUSTOMER_ID).valid is True


class TestValidateCombination:
    def test_two_promotional_coupons(self, service, make_coupon):
        coupons = [make_coupon("A"), make_coupon("B")]
        result = service.validate_combination(coupons, CUSTOMER_ID, Decimal("100"))
        assert result.errors == ["A maximum of 1 promotional coupon per order is allowed"]

    def test_six_exchange_coupons(self, service, make_coupon):
        coupons = [
            make_coupon(f"T{n}", discount="1", category=CouponCategory.EXCHANGE)
            for n in range(6)
        ]
        result = service.validate_combination(coupons, CUSTOMER_ID, Decimal("100"))
        assert result.errors == ["A maximum of 5 exchange coupons per order is allowed"]

    def test_problems_accumulate(self, service, make_coupon):
        coupons = [
            make_coupon("A"),
            make_coupon("B", min_order_value=Decimal("300")),
            make_coupon("T1", category=CouponCategory.EXCHANGE, customer_id="other"),
        ]
        result = service.validate_combination(coupons, CUSTOMER_ID, Decimal("100"))
        assert result.errors == [
            "A maximum of 1 promotional coupon per order is allowed",
            "Coupon T1 belongs to another customer",
            "Order value must be at least 300.00 to use the selected coupons",
        ]

    def test_discount_reaching_order_value_warns(self, service, make_coupon):
        coupons = [make_coupon("A", discount="60"), make_coupon(
            "T1", discount="50", category=CouponCategory.EXCHANGE
        )]
        result = service.validate_combination(coupons, CUSTOMER_ID, Decimal("100"))
        assert result.valid is True
        assert result.warnings == [
            "Total discount reaches the order value and will be reduced",
            "High discount: 110.0% of the order value",
        ]

    def test_same_coupon_twice_is_rejected(self, service, make_coupon):
        trade = make_coupon("TRADE30", discount="30", category=CouponCategory.EXCHANGE)
        result = service.validate_combination([trade, trade], CUSTOMER_ID, Decimal("200"))
        assert result.valid is False
        assert result.errors == ["Coupon TRADE30 applied more than once"]

    def test_no_coupons_is_valid(self, service):
        result = service.validate_combination([], CUSTOMER_ID, Decimal("100"))
        assert result.valid is True
        assert result.warnings == []


class TestDiscounts:
    def test_percentage_is_capped(self, make_coupon):
        coupon = make_coupon(
            "PCT", discount="20", type=CouponKind.PERCENTAGE, max_discount=Decimal("15")
        )
        assert calculate_discount(coupon, Decimal("100")) == Decimal("15")

    def test_percentage_rounds_to_cents(self, make_coupon):
        coupon = make_coupon("PCT", discount="15", type=CouponKind.PERCENTAGE)
        assert calculate_discount(coupon, Decimal("33.33")) == Decimal("5.00")

    def test_fixed_value_is_not_capped_by_order_value(self, make_coupon):
        assert calculate_discount(make_coupon(discount="80"), Decimal("50")) == Decimal("80")

    def test_adjusted_discount_leaves_one_cent(self, service, make_coupon):
        application = service.apply_coupons(
            [make_coupon("A", discount="80")], Decimal("50")
        )
        assert application.total_discount == Decimal("80")
        assert application.adjusted_discount == Decimal("49.99")

    def test_promotional_applied_first(self, service, make_coupon):
        exchange = make_coupon("T1", discount="5", category=CouponCategory.EXCHANGE)
        promo = make_coupon("A", discount="10")
        application = service.apply_coupons([exchange, promo], Decimal("100"))
        assert [a.code for a in application.applied] == ["A", "T1"]
        assert application.adjusted_discount == Decimal("15")


    def test_repeated_coupon_is_applied_once(self, service, make_coupon):
        trade = make_coupon("TRADE30", discount="30", category=CouponCategory.EXCHANGE)
        application = service.apply_coupons([trade, trade], Decimal("200"))
        assert [a.code for a in application.applied] == ["TRADE30"]
        assert application.total_discount == Decimal("30")


class TestCouponCommands:
    def test_add_rejects_duplicate_codes(self, service, make_coupon):
        assert service.add_coupon(make_coupon("SALE")) is True
        assert service.add_coupon(make_coupon("sale", discount="5")) is False
        assert len(service.get_coupons()) == 1

    def test_add_refuses_to_replace_an_unreadable_document(
        self, service, store, make_coupon
    ):
        store.put("coupons", {"SALE": "10%"})
        assert service.add_coupon(make_coupon("SALE")) is False
        assert store.get("coupons") == {"SALE": "10%"}

    def test_add_keeps_records_that_do_not_parse(self, service, store, make_coupon):
        legacy = {"id": "old", "code": "LEGACY", "discount": "ten"}
        store.put("coupons", [legacy])
        assert service.add_coupon(make_coupon("SALE")) is True
        assert store.get("coupons")[-1] == legacy
        assert [c.code for c in service.get_coupons()] == ["SALE"]

    def test_use_coupon_deactivates(self, service, seed_coupons, make_coupon):
        (coupon,) = seed_coupons(make_coupon("SALE"))
        assert service.use_coupon(coupon.id) is True
        assert service.get_active_coupons() == []
        assert service.use_coupon("missing") is False

    def test_consume_only_exchange_coupons(self, service, seed_coupons, make_coupon):
        promo, trade = seed_coupons(
            make_coupon("A"),
            make_coupon("T1", category=CouponCategory.EXCHANGE),
        )
        applied = service.apply_coupons([promo, trade], Decimal("100")).applied

        assert service.consume_exchange_coupons(applied) == [trade.id]
        assert [c.code for c in service.get_active_coupons()] == ["A"]

    def test_active_coupons_exclude_expired(self, service, seed_coupons, make_coupon, clock):
        seed_coupons(
            make_coupon("NEW"),
            make_coupon("OLD", expires_at=clock() - timedelta(seconds=1)),
        )
        assert [c.code for c in service.get_active_coupons()] == ["NEW"]
