"""Catalog DTOs.

- ``CatalogItem``: a sellable card with its price and available stock.
- ``CartLine``: a requested quantity of one catalog item, carrying a
  snapshot of the item taken when it was added to the cart.
- ``StockOperationResult``: outcome of a stock check or mutation.
- ``StockReservation``: a temporary hold on units during checkout.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from modules.catalog.constants import Rarity


class CatalogItem(BaseModel):
    """Immutable catalog entry.  Stock changes produce a new copy."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    type: str = ""
    rarity: Rarity = Rarity.COMMON
    price: Decimal = Field(ge=0)
    stock: int = Field(ge=0)
    image: Optional[str] = None
    description: Optional[str] = None


class CartLine(BaseModel):
    """A cart entry.

    ``quantity`` is deliberately unconstrained here: the cart validator
    reports non-positive quantities instead of the model rejecting them.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    item_id: str
    item: CatalogItem
    quantity: int

    @property
    def subtotal(self) -> Decimal:
        return self.item.price * self.quantity


class StockOperationResult(BaseModel):
    """Immutable outcome of a stock validation, decrement, or increment."""

    model_config = ConfigDict(frozen=True)

    success: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    updated_items: List[CatalogItem] = Field(default_factory=list)


class StockReservation(BaseModel):
    """A temporary hold on units of one item for one customer.

    A reservation stops holding stock when it expires or once it is
    confirmed against an order (the order's decrement replaces it).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    item_id: str
    quantity: int = Field(gt=0)
    customer_id: str
    expires_at: datetime
    created_at: datetime
    order_id: Optional[str] = None

    def is_active(self, now: datetime) -> bool:
        return self.order_id is None and self.expires_at > now


class ReservationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    reservations: List[StockReservation] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class StockLevel(BaseModel):
    """Stock figures of one item: on hand, held by reservations, sellable."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    name: str
    current_stock: int
    reserved_stock: int
    available_stock: int
