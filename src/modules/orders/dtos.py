"""Order DTOs.

- ``Order``: a point-in-time snapshot of a completed checkout.  Only
  ``status`` changes after creation; items keep a frozen copy of each
  card so later catalog edits do not rewrite history.
- ``TransitionResult``: outcome of a lifecycle operation.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from modules.catalog.dtos import CartLine
from modules.coupons.dtos import AppliedCoupon
from modules.customers.dtos import Address
from modules.orders.constants import TERMINAL_STATES, VALID_TRANSITIONS, OrderStatus
from modules.payments.dtos import PaymentInfo


class Order(BaseModel):
    """Immutable order snapshot."""

    model_config = ConfigDict(frozen=True)

    id: str
    customer_id: str
    items: List[CartLine]
    subtotal: Decimal
    discount_amount: Decimal
    shipping_cost: Decimal
    total: Decimal
    status: OrderStatus = OrderStatus.PENDING
    shipping_address: Address
    payment_info: PaymentInfo
    applied_coupons: List[AppliedCoupon] = Field(default_factory=list)
    created_at: datetime
    estimated_delivery: Optional[datetime] = None
    notes: str = ""

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[CartLine]) -> List[CartLine]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)


class TransitionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    order: Optional[Order] = None
    errors: List[str] = Field(default_factory=list)
