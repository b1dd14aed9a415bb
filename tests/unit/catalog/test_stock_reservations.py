"""Unit tests for stock reservations.

Covers:
- Reserving cart quantities and the all-or-nothing rejection.
- Available stock net of other customers' active reservations.
- Confirming, cancelling and expiring reservations.
- Per-item stock levels.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from modules.catalog.repositories import StockReservationRepository
from modules.catalog.services import StockService

pytestmark = pytest.mark.unit

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
CUSTOMER_ID = "cust-1"
OTHER_CUSTOMER = "cust-2"


class MovableClock:
    def __init__(self):
        self.now = NOW

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now += timedelta(**delta)


@pytest.fixture()
def clock():
    return MovableClock()


@pytest.fixture()
def service(store, bus, clock):
    return StockService(store, bus, clock=clock)


@pytest.fixture()
def card(seed_catalog, make_item):
    (item,) = seed_catalog(make_item("card-1", stock=5, name="Serra Angel"))
    return item


class TestReserveStock:
    def test_reservation_holds_units(self, service, card, make_line):
        result = service.reserve_stock([make_line(card, 2)], CUSTOMER_ID)

        assert result.success is True
        (reservation,) = result.reservations
        assert reservation.item_id == "card-1"
        assert reservation.quantity == 2
        assert reservation.customer_id == CUSTOMER_ID
        assert reservation.expires_at == NOW + timedelta(minutes=30)
        assert service.get_available_stock("card-1") == 3

    def test_custom_duration(self, service, card, make_line):
        result = service.reserve_stock([make_line(card, 1)], CUSTOMER_ID, duration_minutes=5)
        assert result.reservations[0].expires_at == NOW + timedelta(minutes=5)

    def test_rejects_more_than_available(self, service, card, make_line):
        service.reserve_stock([make_line(card, 4)], OTHER_CUSTOMER)

        result = service.reserve_stock([make_line(card, 2)], CUSTOMER_ID)

        assert result.success is False
        assert result.errors == ["Serra Angel: only 1 units available"]
        assert len(service.get_reservations()) == 1

    def test_all_or_nothing(self, service, seed_catalog, make_item, make_line):
        a, b = seed_catalog(make_item("a", stock=5), make_item("b", stock=1, name="B"))

        result = service.reserve_stock([make_line(a, 1), make_line(b, 2)], CUSTOMER_ID)

        assert result.success is False
        assert result.errors == ["B: only 1 units available"]
        assert service.get_reservations() == []

    def test_reservations_are_persisted(self, service, store, card, make_line):
        service.reserve_stock([make_line(card, 1)], CUSTOMER_ID)
        (stored,) = StockReservationRepository(store).all()
        assert stored.customer_id == CUSTOMER_ID


class TestAvailabilityWithReservations:
    def test_own_reservation_does_not_block_checkout(self, service, card, make_line):
        service.reserve_stock([make_line(card, 5)], CUSTOMER_ID)

        assert service.get_available_stock("card-1") == 0
        assert service.get_available_stock("card-1", CUSTOMER_ID) == 5
        assert service.validate_cart_stock([make_line(card, 5)], CUSTOMER_ID).success is True

        result = service.decrease_stock([make_line(card, 5)], CUSTOMER_ID)
        assert result.success is True

    def test_other_reservations_block_checkout(self, service, card, make_line):
        service.reserve_stock([make_line(card, 4)], OTHER_CUSTOMER)

        result = service.decrease_stock([make_line(card, 2)], CUSTOMER_ID)

        assert result.success is False
        assert result.errors == ["Serra Angel: insufficient stock (1 available)"]
        assert service.get_item("card-1").stock == 5
        assert service.is_quantity_available("card-1", 1, CUSTOMER_ID) is True
        assert service.is_quantity_available("card-1", 2, CUSTOMER_ID) is False

    def test_reports_use_available_stock(self, service, card, make_line):
        service.reserve_stock([make_line(card, 5)], OTHER_CUSTOMER)
        assert [i.id for i in service.get_out_of_stock_items()] == ["card-1"]
        assert service.get_low_stock_items() == []

    def test_expired_reservations_release_stock(self, service, card, make_line, clock):
        service.reserve_stock([make_line(card, 4)], OTHER_CUSTOMER, duration_minutes=10)
        clock.advance(minutes=10)

        assert service.get_active_reservations() == []
        assert service.get_available_stock("card-1") == 5


class TestReservationLifecycle:
    def test_confirm_releases_the_hold(self, service, card, make_line):
        (reservation,) = service.reserve_stock(
            [make_line(card, 2)], CUSTOMER_ID
        ).reservations

        assert service.confirm_reservation([reservation.id], "ORD-1") is True

        (stored,) = service.get_reservations()
        assert stored.order_id == "ORD-1"
        assert service.get_active_reservations() == []
        assert service.get_available_stock("card-1") == 5

    def test_confirm_unknown_reservation(self, service, card):
        assert service.confirm_reservation(["nope"], "ORD-1") is False
        assert service.confirm_reservation([], "ORD-1") is False

    def test_cancel_removes_the_reservation(self, service, card, make_line):
        (reservation,) = service.reserve_stock(
            [make_line(card, 2)], CUSTOMER_ID
        ).reservations

        assert service.cancel_reservation([reservation.id]) is True
        assert service.get_reservations() == []
        assert service.cancel_reservation([reservation.id]) is False

    def test_clean_expired_keeps_live_and_confirmed(self, service, card, make_line, clock):
        short = service.reserve_stock(
            [make_line(card, 1)], CUSTOMER_ID, duration_minutes=5
        ).reservations[0]
        confirmed = service.reserve_stock(
            [make_line(card, 1)], CUSTOMER_ID, duration_minutes=5
        ).reservations[0]
        live = service.reserve_stock([make_line(card, 1)], OTHER_CUSTOMER).reservations[0]
        service.confirm_reservation([confirmed.id], "ORD-1")
        clock.advance(minutes=6)

        assert service.clean_expired_reservations() == 1

        remaining = {r.id for r in service.get_reservations()}
        assert remaining == {confirmed.id, live.id}
        assert short.id not in remaining
        assert service.clean_expired_reservations() == 0


class TestStockLevels:
    def test_levels_split_reserved_and_available(
        self, service, seed_catalog, make_item, make_line
    ):
        a, _ = seed_catalog(make_item("a", stock=5), make_item("b", stock=0))
        service.reserve_stock([make_line(a, 2)], OTHER_CUSTOMER)

        levels = {level.item_id: level for level in service.get_stock_levels()}

        assert levels["a"].current_stock == 5
        assert levels["a"].reserved_stock == 2
        assert levels["a"].available_stock == 3
        assert levels["b"].available_stock == 0

    def test_single_item(self, service, card):
        (level,) = service.get_stock_levels("card-1")
        assert level.name == "Serra Angel"
        assert service.get_stock_levels("missing") == []
