"""Payment DTOs.

- ``CreditCard``: a saved card (number stored masked, last four digits only).
- ``PaymentAllocation``: an amount charged to one card.
- ``PaymentInfo``: the method selected for an order and, for ``credit``,
  how its total is split across cards.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from modules.payments.constants import CardBrand, PaymentMethod


class CreditCard(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    customer_id: str
    card_number: str
    card_name: str
    expiry_date: str
    brand: CardBrand
    is_default: bool = False
    label: Optional[str] = None


class PaymentAllocation(BaseModel):
    """One (card, amount) pair of a split payment."""

    model_config = ConfigDict(frozen=True)

    card_id: Optional[str] = None
    amount: Decimal


class PaymentInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: Optional[PaymentMethod] = None
    allocations: List[PaymentAllocation] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
