"""Key-value implementation of the Order repository.

Orders are append-only except for ``status``; both writes are
compare-and-swap on the ``orders`` document so concurrent admin actions
cannot overwrite each other's transitions.
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from modules.core.repositories.documents import ListDocumentRepository
from modules.orders.constants import ORDERS_DOCUMENT_KEY, OrderStatus
from modules.orders.dtos import Order

logger = structlog.get_logger(__name__)


class OrderRepository(ListDocumentRepository[Order]):
    """The ``orders`` document."""

    key = ORDERS_DOCUMENT_KEY
    model = Order

    def get_by_id(self, order_id: str) -> Optional[Order]:
        return next((o for o in self.all() if o.id == order_id), None)

    def exists(self, order_id: str) -> bool:
        return self.get_by_id(order_id) is not None

    def list(
        self,
        customer_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        orders = self.all()
        if customer_id is not None:
            orders = [o for o in orders if o.customer_id == customer_id]
        if status is not None:
            orders = [o for o in orders if o.status == status]
        return orders

    def create(self, order: Order) -> Order:
        """Append *order*.

        Raises:
            StorageConflict: the document changed between read and write.
        """
        orders, version = self.all_versioned()
        orders.append(order)
        self.replace_all_if_version(orders, version)
        logger.info("order.persisted", order_id=order.id, item_count=order.item_count)
        return order

    def set_status(
        self, order_id: str, expected: OrderStatus, new_status: OrderStatus
    ) -> Optional[Order]:
        """Move *order_id* from *expected* to *new_status*.

        Returns ``None`` if the order is missing or no longer in
        *expected*.

        Raises:
            StorageConflict: the document changed between read and write.
        """
        orders, version = self.all_versioned()
        for index, order in enumerate(orders):
            if order.id != order_id:
                continue
            if order.status != expected:
                return None
            updated = order.model_copy(update={"status": new_status})
            orders[index] = updated
            self.replace_all_if_version(orders, version)
            return updated
        return None
