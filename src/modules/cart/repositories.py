"""Key-value implementation of the cart repository."""

from __future__ import annotations

from modules.cart.constants import CART_DOCUMENT_KEY
from modules.catalog.dtos import CartLine
from modules.core.repositories.documents import ListDocumentRepository


class CartRepository(ListDocumentRepository[CartLine]):
    """The ``cart`` document of the active browsing session."""

    key = CART_DOCUMENT_KEY
    model = CartLine
    overwrite_unreadable = True
