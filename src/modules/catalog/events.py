"""Domain events for the catalog context."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class StockChanged(DomainEvent):
    """Raised after catalog quantities are written.

    ``aggregate_id`` is the catalog document key; ``item_ids`` lists the
    items whose quantity changed.
    """

    item_ids: Tuple[str, ...] = field(default=())
