"""Stock service layer (Use Cases).

Owns every mutation of catalog quantities and of stock reservations.
Checkout commit decrements, order cancellation increments; nothing else
writes the ``cards`` document's stock figures.

Rules enforced here:
- Available quantity is ``stock`` minus the units held by active
  reservations of other customers, and never goes negative.
- ``decrease_stock`` is all-or-nothing: every line is checked against the
  snapshot it will write before any quantity changes.
- Catalog writes are compare-and-swap on the document version, retried a
  bounded number of times, so two concurrent checkouts cannot both
  decrement the same units.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)
from uuid import uuid4

import structlog
from decouple import config

from modules.catalog.constants import (
    DEFAULT_LOW_STOCK_REPORT_THRESHOLD,
    DEFAULT_RESERVATION_MINUTES,
)
from modules.catalog.dtos import (
    CartLine,
    CatalogItem,
    ReservationResult,
    StockLevel,
    StockOperationResult,
    StockReservation,
)
from modules.catalog.events import StockChanged
from modules.catalog.repositories import CatalogRepository, StockReservationRepository
from modules.core.exceptions import StorageConflict, StorageError
from modules.core.rules import DEFAULT_RULES, BusinessRules
from shared.infrastructure.bus import InMemoryEventBus

if TYPE_CHECKING:
    from modules.core.repositories.interfaces import IKeyValueStore
    from shared.domain.bus import IEventBus

logger = structlog.get_logger(__name__)

DEFAULT_CONFLICT_RETRIES = config("STORAGE_CONFLICT_RETRIES", default=3, cast=int)

# A mutation receives the current catalog (by id) and returns the errors
# that block the write, or the ids of the items it changed.
_Mutation = Callable[[Dict[str, CatalogItem]], Tuple[List[str], List[str]]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StockService:
    """Application service for catalog stock and reservations."""

    def __init__(
        self,
        store: IKeyValueStore,
        event_bus: Optional[IEventBus] = None,
        rules: Optional[BusinessRules] = None,
        conflict_retries: int = DEFAULT_CONFLICT_RETRIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo = CatalogRepository(store)
        self._reservations = StockReservationRepository(store)
        self._bus = event_bus or InMemoryEventBus()
        self._rules = rules or DEFAULT_RULES
        self._conflict_retries = conflict_retries
        self._clock = clock

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_items(self) -> List[CatalogItem]:
        return self._repo.all()

    def get_item(self, item_id: str) -> Optional[CatalogItem]:
        return self._repo.get_by_id(item_id)

    def get_available_stock(self, item_id: str, customer_id: Optional[str] = None) -> int:
        """Sellable quantity; ``0`` for unknown items.

        Reservations held by *customer_id* do not count against them.
        """
        item = self._repo.get_by_id(item_id)
        if item is None:
            return 0
        return max(0, item.stock - self._reserved_by_item(customer_id)[item_id])

    def is_quantity_available(
        self, item_id: str, quantity: int, customer_id: Optional[str] = None
    ) -> bool:
        return self.get_available_stock(item_id, customer_id) >= quantity

    def get_low_stock_items(
        self, threshold: int = DEFAULT_LOW_STOCK_REPORT_THRESHOLD
    ) -> List[CatalogItem]:
        """Items that are still sellable but at or below *threshold*."""
        reserved = self._reserved_by_item()
        return [
            item
            for item in self._repo.all()
            if 0 < item.stock - reserved[item.id] <= threshold
        ]

    def get_out_of_stock_items(self) -> List[CatalogItem]:
        reserved = self._reserved_by_item()
        return [item for item in self._repo.all() if item.stock - reserved[item.id] <= 0]

    def get_stock_levels(self, item_id: Optional[str] = None) -> List[StockLevel]:
        """On-hand, reserved and available figures per item."""
        reserved = self._reserved_by_item()
        items = self._repo.all()
        if item_id is not None:
            items = [item for item in items if item.id == item_id]
        return [
            StockLevel(
                item_id=item.id,
                name=item.name,
                current_stock=item.stock,
                reserved_stock=reserved[item.id],
                available_stock=max(0, item.stock - reserved[item.id]),
            )
            for item in items
        ]

    def validate_cart_stock(
        self, lines: Iterable[CartLine], customer_id: Optional[str] = None
    ) -> StockOperationResult:
        """Check every cart line against current inventory.

        Reads only; never mutates.  The low-stock warning looks at the
        current available quantity, not at what would remain after the
        purchase.
        """
        catalog = self._repo.by_id()
        reserved = self._reserved_by_item(customer_id)
        errors: List[str] = []
        warnings: List[str] = []

        for line in lines:
            name = line.item.name
            item = catalog.get(line.item_id)
            if item is None:
                errors.append(f"{name}: item not found in catalog")
                continue
            available = max(0, item.stock - reserved[item.id])
            if available <= 0:
                errors.append(f"{name}: out of stock")
            elif line.quantity > available:
                errors.append(f"{name}: insufficient stock (only {available} available)")
            elif available <= self._rules.low_stock_threshold:
                warnings.append(f"{name}: only {available} units left in stock")

        if errors:
            logger.info("stock.validation_failed", error_count=len(errors))
        return StockOperationResult(
            success=not errors, errors=errors, warnings=warnings
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def decrease_stock(
        self, lines: Iterable[CartLine], customer_id: Optional[str] = None
    ) -> StockOperationResult:
        """Subtract purchased quantities, all lines or none.

        Lines for the same item are summed before checking, so a cart can
        never take an item below zero by splitting it over two lines.
        Units reserved by other customers are not sellable.
        """
        lines = list(lines)
        requested = Counter()
        for line in lines:
            requested[line.item_id] += line.quantity
        names = {line.item_id: line.item.name for line in lines}
        reserved = self._reserved_by_item(customer_id)

        def mutation(catalog: Dict[str, CatalogItem]) -> Tuple[List[str], List[str]]:
            errors: List[str] = []
            for item_id, quantity in requested.items():
                item = catalog.get(item_id)
                if quantity <= 0:
                    errors.append(f"{names[item_id]}: invalid quantity {quantity}")
                elif item is None:
                    errors.append(f"{names[item_id]}: item not found in catalog")
                elif item.stock - reserved[item_id] < quantity:
                    available = max(0, item.stock - reserved[item_id])
                    errors.append(
                        f"{names[item_id]}: insufficient stock ({available} available)"
                    )
            if errors:
                return errors, []

            for item_id, quantity in requested.items():
                item = catalog[item_id]
                catalog[item_id] = item.model_copy(update={"stock": item.stock - quantity})
            return [], list(requested)

        result = self._apply(mutation, operation="decrease")
        if result.success:
            for item in result.updated_items:
                logger.info(
                    "stock.decreased",
                    item_id=item.id,
                    quantity=requested[item.id],
                    remaining=item.stock,
                )
        else:
            logger.warning("stock.decrease_rejected", errors=result.errors)
        return result

    def increase_stock(self, lines: Iterable[CartLine]) -> StockOperationResult:
        """Add quantities back, e.g. when an order is cancelled.

        Unconditional: callers must pass exactly the quantities that were
        decremented, once.  Items no longer in the catalog are skipped
        with a warning; ``success`` is ``False`` only when the write
        itself failed.
        """
        returned = Counter()
        for line in lines:
            if line.quantity > 0:
                returned[line.item_id] += line.quantity
        missing: List[str] = []

        def mutation(catalog: Dict[str, CatalogItem]) -> Tuple[List[str], List[str]]:
            missing.clear()
            changed: List[str] = []
            for item_id, quantity in returned.items():
                item = catalog.get(item_id)
                if item is None:
                    missing.append(item_id)
                    continue
                catalog[item_id] = item.model_copy(update={"stock": item.stock + quantity})
                changed.append(item_id)
            return [], changed

        result = self._apply(mutation, operation="increase")
        if not result.success:
            logger.error("stock.restore_failed", errors=result.errors)
            return result

        for item in result.updated_items:
            logger.info(
                "stock.increased",
                item_id=item.id,
                quantity=returned[item.id],
                restored_stock=item.stock,
            )
        for item_id in missing:
            logger.warning("stock.restore_item_missing", item_id=item_id)
        return result.model_copy(
            update={"warnings": [f"Item {item_id} no longer in catalog" for item_id in missing]}
        )

    def update_stock(self, item_id: str, new_quantity: int) -> bool:
        """Set an item's quantity directly (clamped at zero)."""

        def mutation(catalog: Dict[str, CatalogItem]) -> Tuple[List[str], List[str]]:
            item = catalog.get(item_id)
            if item is None:
                return [f"Item {item_id} not found in catalog"], []
            catalog[item_id] = item.model_copy(update={"stock": max(0, new_quantity)})
            return [], [item_id]

        result = self._apply(mutation, operation="update")
        if result.success:
            logger.info("stock.updated", item_id=item_id, stock=max(0, new_quantity))
        return result.success

    # ------------------------------------------------------------------
    # Reservations
    # ------------------------------------------------------------------

    def get_reservations(self) -> List[StockReservation]:
        return self._reservations.all()

    def get_active_reservations(self) -> List[StockReservation]:
        """Unconfirmed reservations that have not expired yet."""
        now = self._clock()
        return [r for r in self._reservations.all() if r.is_active(now)]

    def reserve_stock(
        self,
        lines: Iterable[CartLine],
        customer_id: str,
        duration_minutes: int = DEFAULT_RESERVATION_MINUTES,
    ) -> ReservationResult:
        """Hold the cart's quantities for *customer_id*, all lines or none."""
        lines = list(lines)
        requested = Counter()
        for line in lines:
            requested[line.item_id] += line.quantity

        errors = []
        for line in lines:
            available = self.get_available_stock(line.item_id)
            if line.quantity <= 0 or requested[line.item_id] > available:
                errors.append(f"{line.item.name}: only {available} units available")
        if errors:
            logger.info("stock.reservation_rejected", customer_id=customer_id, errors=errors)
            return ReservationResult(success=False, errors=errors)

        now = self._clock()
        created = [
            StockReservation(
                id=uuid4().hex,
                item_id=line.item_id,
                quantity=line.quantity,
                customer_id=customer_id,
                expires_at=now + timedelta(minutes=duration_minutes),
                created_at=now,
            )
            for line in lines
        ]
        if not self._update_reservations(lambda current: current + created):
            return ReservationResult(
                success=False,
                errors=["Stock was updated by another checkout, please try again"],
            )

        logger.info(
            "stock.reserved",
            customer_id=customer_id,
            reservation_ids=[r.id for r in created],
        )
        return ReservationResult(success=True, reservations=created)

    def confirm_reservation(self, reservation_ids: Sequence[str], order_id: str) -> bool:
        """Attach reservations to *order_id*; they stop holding stock."""
        wanted = set(reservation_ids)

        def confirm(current: List[StockReservation]) -> List[StockReservation]:
            return [
                r.model_copy(update={"order_id": order_id}) if r.id in wanted else r
                for r in current
            ]

        if not wanted or not any(r.id in wanted for r in self._reservations.all()):
            return False
        confirmed = self._update_reservations(confirm)
        if confirmed:
            logger.info("stock.reservation_confirmed", order_id=order_id)
        return confirmed

    def cancel_reservation(self, reservation_ids: Sequence[str]) -> bool:
        wanted = set(reservation_ids)
        if not any(r.id in wanted for r in self._reservations.all()):
            return False
        cancelled = self._update_reservations(
            lambda current: [r for r in current if r.id not in wanted]
        )
        if cancelled:
            logger.info("stock.reservation_cancelled", count=len(wanted))
        return cancelled

    def clean_expired_reservations(self) -> int:
        """Drop expired, unconfirmed reservations; return how many went."""
        now = self._clock()
        expired = {
            r.id
            for r in self._reservations.all()
            if r.order_id is None and r.expires_at <= now
        }
        if not expired:
            return 0
        if not self._update_reservations(
            lambda current: [r for r in current if r.id not in expired]
        ):
            return 0
        logger.info("stock.reservations_expired", count=len(expired))
        return len(expired)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _reserved_by_item(self, exclude_customer: Optional[str] = None) -> Counter:
        reserved = Counter()
        for reservation in self.get_active_reservations():
            if exclude_customer is None or reservation.customer_id != exclude_customer:
                reserved[reservation.item_id] += reservation.quantity
        return reserved

    def _update_reservations(
        self, change: Callable[[List[StockReservation]], List[StockReservation]]
    ) -> bool:
        for attempt in range(1, self._conflict_retries + 1):
            reservations, version = self._reservations.all_versioned()
            try:
                self._reservations.replace_all_if_version(change(reservations), version)
                return True
            except StorageConflict:
                logger.warning("stock.reservation_conflict", attempt=attempt)
            except StorageError:
                logger.exception("stock.reservation_write_failed")
                return False
        return False

    def _apply(self, mutation: _Mutation, operation: str) -> StockOperationResult:
        """Run *mutation* against a fresh snapshot and write it back.

        The write is conditional on the snapshot's version; on conflict
        the whole read-check-write cycle is repeated.
        """
        for attempt in range(1, self._conflict_retries + 1):
            items, version = self._repo.all_versioned()
            catalog = {item.id: item for item in items}
            errors, changed = mutation(catalog)
            if errors:
                return StockOperationResult(success=False, errors=errors)
            if not changed:
                return StockOperationResult(success=True)

            ordered = [catalog[item.id] for item in items]
            try:
                self._repo.replace_all_if_version(ordered, version)
            except StorageConflict:
                logger.warning(
                    "stock.write_conflict", operation=operation, attempt=attempt
                )
                continue
            except StorageError:
                logger.exception("stock.write_failed", operation=operation)
                return StockOperationResult(
                    success=False, errors=["Stock data could not be saved"]
                )

            self._bus.publish(
                StockChanged(aggregate_id=self._repo.key, item_ids=tuple(changed))
            )
            return StockOperationResult(
                success=True, updated_items=[catalog[item_id] for item_id in changed]
            )

        logger.error(
            "stock.write_abandoned",
            operation=operation,
            attempts=self._conflict_retries,
        )
        return StockOperationResult(
            success=False,
            errors=["Stock was updated by another checkout, please try again"],
        )
