"""Order repositories package."""

from modules.orders.repositories.kv_repository import OrderRepository

__all__ = ["OrderRepository"]
