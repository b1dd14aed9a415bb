"""Key-value implementations of the catalog repositories."""

from __future__ import annotations

from typing import Dict, Optional

from modules.catalog.constants import CATALOG_DOCUMENT_KEY, RESERVATIONS_DOCUMENT_KEY
from modules.catalog.dtos import CatalogItem, StockReservation
from modules.core.repositories.documents import ListDocumentRepository


class CatalogRepository(ListDocumentRepository[CatalogItem]):
    """The ``cards`` document: every catalog item with its stock."""

    key = CATALOG_DOCUMENT_KEY
    model = CatalogItem

    def get_by_id(self, item_id: str) -> Optional[CatalogItem]:
        return next((item for item in self.all() if item.id == item_id), None)

    def by_id(self) -> Dict[str, CatalogItem]:
        return {item.id: item for item in self.all()}


class StockReservationRepository(ListDocumentRepository[StockReservation]):
    """The ``stock_reservations`` document."""

    key = RESERVATIONS_DOCUMENT_KEY
    model = StockReservation
