"""Order service layer (Use Cases).

Creates order snapshots and drives them through the status lifecycle.

Business rules enforced here:
- Status transitions follow ``VALID_TRANSITIONS``:
  pending -> processing -> shipped -> delivered, with cancelled reachable
  from pending or processing only.
- ``cancel_order`` is the single path into ``cancelled`` and the only
  transition with an inventory effect: it restores exactly the
  quantities the order decremented.  ``update_status`` routes a
  ``cancelled`` target through it.
- The status is written before stock is restored, and only if the order
  is still in the status that was checked, so a cancellation can never
  restore the same units twice.  If the restore cannot be written the
  status is swapped back and the cancellation reports failure.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, List, Optional

import structlog

from modules.core.exceptions import StorageConflict, StorageError
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    OrderStatus,
)
from modules.orders.dtos import Order, TransitionResult
from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from modules.orders.repositories import OrderRepository
from shared.infrastructure.bus import InMemoryEventBus

if TYPE_CHECKING:
    from modules.catalog.services import StockService
    from modules.core.repositories.interfaces import IKeyValueStore
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderService:
    """Application service for Order use-cases.

    Receives the store, the stock service (for cancellation) and the
    event bus via constructor injection.
    """

    def __init__(
        self,
        store: IKeyValueStore,
        stock_service: StockService,
        event_bus: Optional[IEventBus] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = OrderRepository(store)
        self._stock = stock_service
        self._bus = event_bus or InMemoryEventBus()
        self._clock = clock

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def generate_order_id(self) -> str:
        """Generate a unique order identifier: ``ORD-YYYYMMDD-XXXXXX``."""
        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            candidate = (
                f"{ORDER_NUMBER_PREFIX}-{self._clock():%Y%m%d}-"
                f"{secrets.token_hex(3).upper()}"
            )
            if not self._repo.exists(candidate):
                return candidate
        raise RuntimeError(
            f"Failed to generate unique order id after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts"
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, order: Order) -> Order:
        """Persist a freshly built order snapshot in ``pending``.

        Raises:
            StorageConflict: the orders document kept changing underneath.
            StorageError: the orders document could not be written.
        """
        for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
            try:
                self._repo.create(order)
                break
            except StorageConflict:
                logger.warning("order.create_conflict", order_id=order.id, attempt=attempt)
                if attempt == ORDER_NUMBER_MAX_RETRIES:
                    raise

        logger.info(
            "order.created",
            order_id=order.id,
            customer_id=order.customer_id,
            item_count=order.item_count,
            total=str(order.total),
        )
        self._bus.publish(
            OrderCreated(aggregate_id=order.id, item_count=order.item_count)
        )
        return order

    def update_status(self, order_id: str, new_status: OrderStatus) -> TransitionResult:
        """Transition an order along a forward edge.

        A ``cancelled`` target is delegated to ``cancel_order`` so the
        stock side effect cannot be skipped.  Unknown status values are
        reported as a failed transition.
        """
        try:
            new_status = OrderStatus(new_status)
        except ValueError:
            logger.warning("order.unknown_status", order_id=order_id, new_status=new_status)
            return TransitionResult(success=False, errors=[f"Unknown status {new_status}"])
        if new_status == OrderStatus.CANCELLED:
            return self.cancel_order(order_id)

        order = self._repo.get_by_id(order_id)
        if order is None:
            return TransitionResult(success=False, errors=[f"Order {order_id} not found"])

        log = logger.bind(
            order_id=order_id,
            current_status=order.status.value,
            new_status=new_status.value,
        )
        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            return TransitionResult(
                success=False,
                order=order,
                errors=[
                    f"Cannot transition from {order.status.value} to {new_status.value}"
                ],
            )

        updated = self._write_status(order, new_status)
        if updated is None:
            log.warning("order.transition_lost")
            return TransitionResult(
                success=False,
                order=self._repo.get_by_id(order_id),
                errors=[f"Order {order_id} was changed concurrently, please retry"],
            )

        log.info("order.status_updated")
        self._bus.publish(
            OrderStatusChanged(
                aggregate_id=order_id,
                old_status=order.status.value,
                new_status=new_status.value,
            )
        )
        return TransitionResult(success=True, order=updated)

    def cancel_order(self, order_id: str) -> TransitionResult:
        """Cancel an order and restore the stock it decremented."""
        order = self._repo.get_by_id(order_id)
        if order is None:
            return TransitionResult(success=False, errors=[f"Order {order_id} not found"])

        log = logger.bind(order_id=order_id, current_status=order.status.value)

        if not order.can_transition_to(OrderStatus.CANCELLED):
            log.warning("order.cancel_not_allowed")
            return TransitionResult(
                success=False,
                order=order,
                errors=[f"Cannot cancel order in status {order.status.value}"],
            )

        updated = self._write_status(order, OrderStatus.CANCELLED)
        if updated is None:
            log.warning("order.cancel_lost")
            return TransitionResult(
                success=False,
                order=self._repo.get_by_id(order_id),
                errors=[f"Order {order_id} was changed concurrently, please retry"],
            )

        restore = self._stock.increase_stock(order.items)
        if not restore.success:
            reverted = self._revert_status(updated, order.status)
            log.error(
                "order.cancel_restore_failed",
                errors=restore.errors,
                reverted=reverted is not None,
            )
            return TransitionResult(
                success=False,
                order=reverted or self._repo.get_by_id(order_id),
                errors=[f"Stock could not be restored for order {order_id}, please retry"],
            )

        restored = bool(restore.updated_items)
        log.info("order.cancelled", stock_restored=restored, warnings=restore.warnings)
        self._bus.publish(OrderCancelled(aggregate_id=order_id, stock_restored=restored))
        return TransitionResult(success=True, order=updated)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Optional[Order]:
        return self._repo.get_by_id(order_id)

    def list_orders(
        self,
        customer_id: Optional[str] = None,
        status: Optional[OrderStatus] = None,
    ) -> List[Order]:
        """Return orders, optionally filtered by customer and status."""
        return self._repo.list(customer_id=customer_id, status=status)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _write_status(self, order: Order, new_status: OrderStatus) -> Optional[Order]:
        """Compare-and-swap the status; ``None`` if the order moved meanwhile."""
        for attempt in range(1, ORDER_NUMBER_MAX_RETRIES + 1):
            try:
                return self._repo.set_status(order.id, order.status, new_status)
            except StorageConflict:
                logger.warning(
                    "order.status_write_conflict", order_id=order.id, attempt=attempt
                )
            except StorageError:
                logger.exception("order.status_write_failed", order_id=order.id)
                return None
        return None

    def _revert_status(self, order: Order, previous: OrderStatus) -> Optional[Order]:
        """Swap a just-written status back to *previous*."""
        reverted = self._write_status(order, previous)
        if reverted is None:
            logger.error(
                "order.status_revert_failed",
                order_id=order.id,
                status=order.status.value,
                previous=previous.value,
            )
        return reverted
