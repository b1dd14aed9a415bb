"""Customer repositories package."""

from modules.customers.repositories.kv_repository import (
    AddressRepository,
    CustomerRepository,
)

__all__ = ["AddressRepository", "CustomerRepository"]
