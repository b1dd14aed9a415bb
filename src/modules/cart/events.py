"""Domain events for the cart context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class CartChanged(DomainEvent):
    """Raised after the session cart document is written."""
