"""Customer look-ups used by checkout.

Business rules enforced here:
- A customer that is not on file cannot check out, once a customer
  snapshot exists at all.
- The shipping address must belong to the checking-out customer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import structlog

from modules.customers.dtos import Address, Customer
from modules.customers.repositories import AddressRepository, CustomerRepository

if TYPE_CHECKING:
    from modules.core.repositories.interfaces import IKeyValueStore

logger = structlog.get_logger(__name__)


class CustomerDirectory:
    """Read-only view over the ``customers`` and ``customer_addresses`` documents."""

    def __init__(self, store: IKeyValueStore) -> None:
        self._customers = CustomerRepository(store)
        self._addresses = AddressRepository(store)

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        return self._customers.get_by_id(customer_id)

    def get_addresses(self, customer_id: str) -> List[Address]:
        return self._addresses.for_customer(customer_id)

    def get_default_address(self, customer_id: str) -> Optional[Address]:
        addresses = self.get_addresses(customer_id)
        return next((a for a in addresses if a.is_default), None) or (
            addresses[0] if addresses else None
        )

    def validate_customer(self, customer_id: Optional[str]) -> List[str]:
        """Return the problems with *customer_id* (empty when fine)."""
        errors: List[str] = []
        if not customer_id or not customer_id.strip():
            errors.append("Customer is required")
            return errors

        known = self._customers.all()
        if known and not any(c.id == customer_id for c in known):
            logger.warning("customer.not_found", customer_id=customer_id)
            errors.append(f"Customer {customer_id} not found")
        return errors

    def validate_shipping_address(self, customer_id: str, address: Address) -> List[str]:
        if address.customer_id != customer_id:
            return ["Shipping address does not belong to the customer"]
        return []
