"""Domain events for the Orders context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrdersChanged(DomainEvent):
    """Raised whenever the ``orders`` document changes."""


@dataclass(frozen=True)
class OrderCreated(OrdersChanged):
    """Raised when an order is created; ``item_count`` counts units."""

    item_count: int = 0


@dataclass(frozen=True)
class OrderStatusChanged(OrdersChanged):
    """Raised when an order moves along a forward edge."""

    old_status: Optional[str] = None
    new_status: Optional[str] = None


@dataclass(frozen=True)
class OrderCancelled(OrdersChanged):
    """Raised when an order is cancelled and its stock restored."""

    stock_restored: bool = False
