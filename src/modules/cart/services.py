"""Cart validation and the session cart store.

``CartValidator`` is pure: it inspects cart composition only and never
reads inventory (stock sufficiency belongs to ``StockService``).
``CartService`` keeps the session's ``cart`` document and notifies
observers on every change.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, List, Optional
from uuid import uuid4

import structlog

from modules.cart.events import CartChanged
from modules.cart.repositories import CartRepository
from modules.catalog.dtos import CartLine, CatalogItem
from modules.core.dtos import ValidationResult
from modules.core.rules import DEFAULT_RULES, BusinessRules
from shared.infrastructure.bus import InMemoryEventBus

if TYPE_CHECKING:
    from modules.core.repositories.interfaces import IKeyValueStore
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


def calculate_subtotal(lines: Iterable[CartLine]) -> Decimal:
    """Sum of ``price * quantity`` over the snapshot prices of *lines*."""
    return sum((line.subtotal for line in lines), Decimal("0"))


class CartValidator:
    """Validates cart composition (line count, quantities, value)."""

    def __init__(self, rules: Optional[BusinessRules] = None) -> None:
        self._rules = rules or DEFAULT_RULES

    def validate_cart(self, lines: Iterable[CartLine]) -> ValidationResult:
        lines = list(lines)
        rules = self._rules
        errors: List[str] = []
        warnings: List[str] = []

        if len(lines) > rules.max_cart_lines:
            errors.append(f"A maximum of {rules.max_cart_lines} items per order is allowed")

        for line in lines:
            if line.quantity <= 0:
                errors.append(f"Invalid quantity for {line.item.name}")
            if line.quantity > rules.high_line_quantity:
                warnings.append(
                    f"High quantity for {line.item.name}: {line.quantity} units"
                )

        subtotal = calculate_subtotal(lines)
        if subtotal <= 0:
            errors.append("Order total must be greater than zero")
        if subtotal > rules.high_order_value:
            warnings.append(f"High order value: {subtotal:.2f}")

        return ValidationResult.from_messages(errors, warnings)


class CartService:
    """The session cart, persisted under the ``cart`` key."""

    def __init__(
        self, store: IKeyValueStore, event_bus: Optional[IEventBus] = None
    ) -> None:
        self._repo = CartRepository(store)
        self._bus = event_bus or InMemoryEventBus()

    def get_lines(self) -> List[CartLine]:
        return self._repo.all()

    def get_subtotal(self) -> Decimal:
        return calculate_subtotal(self._repo.all())

    def add_item(self, item: CatalogItem, quantity: int = 1) -> List[CartLine]:
        """Add *item*, merging with an existing line for the same item."""
        lines = self._repo.all()
        for index, line in enumerate(lines):
            if line.item_id == item.id:
                lines[index] = line.model_copy(update={"quantity": line.quantity + quantity})
                break
        else:
            lines.append(
                CartLine(id=uuid4().hex, item_id=item.id, item=item, quantity=quantity)
            )
        logger.info("cart.item_added", item_id=item.id, quantity=quantity)
        return self._write(lines)

    def update_quantity(self, item_id: str, quantity: int) -> List[CartLine]:
        """Set a line's quantity; a non-positive quantity removes the line."""
        if quantity <= 0:
            return self.remove_item(item_id)
        lines = [
            line.model_copy(update={"quantity": quantity}) if line.item_id == item_id else line
            for line in self._repo.all()
        ]
        logger.info("cart.quantity_updated", item_id=item_id, quantity=quantity)
        return self._write(lines)

    def remove_item(self, item_id: str) -> List[CartLine]:
        lines = [line for line in self._repo.all() if line.item_id != item_id]
        logger.info("cart.item_removed", item_id=item_id)
        return self._write(lines)

    def clear(self) -> None:
        self._write([])
        logger.info("cart.cleared")

    def _write(self, lines: List[CartLine]) -> List[CartLine]:
        self._repo.replace_all(lines)
        self._bus.publish(CartChanged(aggregate_id=self._repo.key))
        return lines
