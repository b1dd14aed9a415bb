"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from shared.domain.bus import IEventBus, IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            f"Processing creation of order {event.aggregate_id}",
            order_id=event.aggregate_id,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info(
            f"Processing cancellation of order {event.aggregate_id}",
            order_id=event.aggregate_id,
            stock_restored=event.stock_restored,
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            f"Processing status change of order {event.aggregate_id}",
            order_id=event.aggregate_id,
            old_status=event.old_status,
            new_status=event.new_status,
        )


order_created_handler = OrderCreatedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()


def register_order_handlers(bus: IEventBus) -> None:
    bus.subscribe(OrderCreated, order_created_handler)
    bus.subscribe(OrderCancelled, order_cancelled_handler)
    bus.subscribe(OrderStatusChanged, order_status_changed_handler)
