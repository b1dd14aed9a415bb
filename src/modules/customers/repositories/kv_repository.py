"""Key-value implementations of the customer snapshot repositories."""

from __future__ import annotations

from typing import List, Optional

from modules.core.repositories.documents import ListDocumentRepository
from modules.customers.constants import ADDRESSES_DOCUMENT_KEY, CUSTOMERS_DOCUMENT_KEY
from modules.customers.dtos import Address, Customer


class CustomerRepository(ListDocumentRepository[Customer]):
    """The ``customers`` document."""

    key = CUSTOMERS_DOCUMENT_KEY
    model = Customer

    def get_by_id(self, customer_id: str) -> Optional[Customer]:
        return next((c for c in self.all() if c.id == customer_id), None)


class AddressRepository(ListDocumentRepository[Address]):
    """The ``customer_addresses`` document."""

    key = ADDRESSES_DOCUMENT_KEY
    model = Address

    def for_customer(self, customer_id: str) -> List[Address]:
        return [a for a in self.all() if a.customer_id == customer_id]
