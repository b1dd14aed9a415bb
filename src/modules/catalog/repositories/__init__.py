"""Catalog repositories package."""

from modules.catalog.repositories.kv_repository import (
    CatalogRepository,
    StockReservationRepository,
)

__all__ = ["CatalogRepository", "StockReservationRepository"]
