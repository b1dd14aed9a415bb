"""Unit tests for PaymentService.validate_payment."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.payments.constants import CardBrand, PaymentMethod
from modules.payments.dtos import CreditCard, PaymentAllocation, PaymentInfo
from modules.payments.repositories import CreditCardRepository
from modules.payments.services import PaymentService

pytestmark = pytest.mark.unit


def credit(*amounts, total, card_ids=None):
    card_ids = card_ids or [None] * len(amounts)
    return PaymentInfo(
        method=PaymentMethod.CREDIT,
        allocations=[
            PaymentAllocation(card_id=card_id, amount=Decimal(amount))
            for card_id, amount in zip(card_ids, amounts)
        ],
        total_amount=Decimal(total),
    )


class TestValidatePayment:
    def test_split_matching_total(self):
        result = PaymentService().validate_payment(credit("60.00", "39.99", total="99.99"))
        assert result.valid is True
        assert result.errors == []

    def test_split_off_by_more_than_a_cent(self):
        result = PaymentService().validate_payment(credit("60.00", "39.00", total="99.99"))
        assert result.valid is False
        assert result.errors == ["Allocation sum does not match total"]

    def test_one_cent_difference_is_tolerated(self):
        result = PaymentService().validate_payment(credit("60.00", "39.98", total="99.99"))
        assert result.valid is True

    def test_missing_method(self):
        result = PaymentService().validate_payment(PaymentInfo(total_amount=Decimal("10")))
        assert result.errors == ["A payment method is required"]

    def test_non_credit_methods_skip_allocation_rules(self):
        info = PaymentInfo(method=PaymentMethod.PIX, total_amount=Decimal("99.99"))
        assert PaymentService().validate_payment(info).valid is True

    def test_four_cards(self):
        result = PaymentService().validate_payment(
            credit("25", "25", "25", "25", total="100")
        )
        assert result.errors == ["A maximum of 3 cards per order is allowed"]

    def test_non_positive_allocation(self):
        result = PaymentService().validate_payment(credit("100", "0", total="100"))
        assert "Invalid amount on card 2" in result.errors

    def test_low_and_lopsided_amounts_warn(self):
        result = PaymentService().validate_payment(credit("96", "4", total="100"))
        assert result.valid is True
        assert result.warnings == [
            "Unusually low amount on card 2: 4.00",
            "Uneven split between cards",
        ]


class TestCardOwnership:
    @pytest.fixture()
    def service(self, store):
        CreditCardRepository(store).replace_all(
            [
                CreditCard(
                    id="card-1",
                    customer_id="cust-1",
                    card_number="**** **** **** 1111",
                    card_name="ANA SOUZA",
                    expiry_date="12/2030",
                    brand=CardBrand.VISA,
                )
            ]
        )
        return PaymentService(store)

    def test_own_card(self, service):
        info = credit("50", total="50", card_ids=["card-1"])
        assert service.validate_payment(info, "cust-1").valid is True

    def test_foreign_card(self, service):
        info = credit("50", total="50", card_ids=["card-1"])
        result = service.validate_payment(info, "cust-2")
        assert result.errors == ["Card 1 does not belong to the customer"]

    def test_customer_cards(self, service):
        assert [c.id for c in service.get_customer_cards("cust-1")] == ["card-1"]
        assert service.get_customer_cards("cust-2") == []


class TestOwnershipWithoutSavedCards:
    def test_missing_card_document_skips_the_check(self, store):
        info = credit("50", total="50", card_ids=["card-9"])
        assert PaymentService(store).validate_payment(info, "cust-1").valid is True

    def test_empty_card_document_skips_the_check(self, store):
        store.put("customer_credit_cards", [])
        info = credit("50", total="50", card_ids=["card-9"])
        assert PaymentService(store).validate_payment(info, "cust-1").errors == []
