"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, List, Type

import structlog

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus.

    A handler subscribed to a base event class also receives its
    subclasses (``OrdersChanged`` listeners see ``OrderCancelled``).
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def unsubscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.get(event_class, [])
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event: DomainEvent) -> None:
        for event_class in type(event).__mro__:
            for handler in list(self._handlers.get(event_class, [])):
                try:
                    handler.handle(event)
                except Exception:
                    logger.exception(
                        "event_bus.handler_failed",
                        event_name=event.event_name,
                        aggregate_id=event.aggregate_id,
                    )
