"""Payment allocation validation.

A ``credit`` payment may be split across up to three saved cards.  The
allocations must add up to the order total within the configured
epsilon; lopsided or tiny splits are allowed but reported as warnings.
Non-credit methods carry no per-instrument rules.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

import structlog

from modules.core.dtos import ValidationResult
from modules.core.rules import DEFAULT_RULES, BusinessRules
from modules.payments.constants import PaymentMethod
from modules.payments.dtos import CreditCard, PaymentInfo
from modules.payments.repositories import CreditCardRepository

if TYPE_CHECKING:
    from modules.core.repositories.interfaces import IKeyValueStore

logger = structlog.get_logger(__name__)


class PaymentService:
    """Validates ``PaymentInfo`` objects.

    With a *store* holding saved cards, allocations that reference a
    saved card are also checked against the customer's
    ``customer_credit_cards`` snapshot.  An empty snapshot skips the check.
    """

    def __init__(
        self,
        store: Optional[IKeyValueStore] = None,
        rules: Optional[BusinessRules] = None,
    ) -> None:
        self._cards = CreditCardRepository(store) if store is not None else None
        self._rules = rules or DEFAULT_RULES

    def get_customer_cards(self, customer_id: str) -> List[CreditCard]:
        if self._cards is None:
            return []
        return self._cards.for_customer(customer_id)

    def validate_payment(
        self, payment_info: PaymentInfo, customer_id: Optional[str] = None
    ) -> ValidationResult:
        rules = self._rules
        errors: List[str] = []
        warnings: List[str] = []

        if payment_info.method is None:
            errors.append("A payment method is required")

        if payment_info.method == PaymentMethod.CREDIT:
            allocations = payment_info.allocations

            if len(allocations) > rules.max_credit_cards:
                errors.append(
                    f"A maximum of {rules.max_credit_cards} cards per order is allowed"
                )

            allocated = sum((a.amount for a in allocations), Decimal("0"))
            if abs(allocated - payment_info.total_amount) > rules.allocation_epsilon:
                errors.append("Allocation sum does not match total")

            for position, allocation in enumerate(allocations, start=1):
                if allocation.amount <= 0:
                    errors.append(f"Invalid amount on card {position}")
                if allocation.amount < rules.low_allocation_amount:
                    warnings.append(
                        f"Unusually low amount on card {position}: "
                        f"{allocation.amount:.2f}"
                    )

            if len(allocations) > 1:
                amounts = [a.amount for a in allocations]
                if min(amounts) < max(amounts) * rules.lopsided_split_ratio:
                    warnings.append("Uneven split between cards")

            if customer_id and self._has_saved_cards():
                errors.extend(self._check_card_ownership(payment_info, customer_id))

        if errors:
            logger.info(
                "payment.validation_failed",
                method=payment_info.method.value if payment_info.method else None,
                error_count=len(errors),
            )
        return ValidationResult.from_messages(errors, warnings)

    def _has_saved_cards(self) -> bool:
        return self._cards is not None and bool(self._cards.all())

    def _check_card_ownership(
        self, payment_info: PaymentInfo, customer_id: str
    ) -> List[str]:
        owned = {card.id for card in self.get_customer_cards(customer_id)}
        return [
            f"Card {position} does not belong to the customer"
            for position, allocation in enumerate(payment_info.allocations, start=1)
            if allocation.card_id is not None and allocation.card_id not in owned
        ]
