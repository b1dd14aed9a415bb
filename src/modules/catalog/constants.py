"""Catalog domain constants."""

from __future__ import annotations

from enum import Enum

CATALOG_DOCUMENT_KEY = "cards"

DEFAULT_LOW_STOCK_REPORT_THRESHOLD = 5

RESERVATIONS_DOCUMENT_KEY = "stock_reservations"

DEFAULT_RESERVATION_MINUTES = 30


class Rarity(str, Enum):
    """Card rarity tier, ordered from most to least common."""

    COMMON = "Common"
    UNCOMMON = "Uncommon"
    RARE = "Rare"
    EPIC = "Epic"
    LEGENDARY = "Legendary"

    @property
    def rank(self) -> int:
        return _RARITY_RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Rarity):
            return NotImplemented
        return self.rank >= other.rank


_RARITY_RANKS = {rarity: rank for rank, rarity in enumerate(Rarity)}
