from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from modules.catalog.constants import Rarity
from modules.catalog.dtos import CartLine, CatalogItem
from modules.catalog.repositories import CatalogRepository
from modules.core.repositories import InMemoryKeyValueStore
from modules.coupons.constants import CouponCategory, CouponKind
from modules.coupons.dtos import Coupon
from modules.coupons.repositories import CouponRepository
from modules.customers.dtos import Address
from shared.infrastructure.bus import InMemoryEventBus

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
CUSTOMER_ID = "cust-1"


class RecordingHandler:
    """Event handler that keeps every event it receives."""

    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)


@pytest.fixture()
def store():
    return InMemoryKeyValueStore()


@pytest.fixture()
def bus():
    return InMemoryEventBus()


@pytest.fixture()
def clock():
    return lambda: NOW


@pytest.fixture()
def recorder():
    return RecordingHandler()


@pytest.fixture()
def make_item():
    def _make(item_id="card-1", price="50.00", stock=10, name=None, rarity=Rarity.RARE):
        return CatalogItem(
            id=item_id,
            name=name or f"Card {item_id}",
            type="Creature",
            rarity=rarity,
            price=Decimal(price),
            stock=stock,
        )

    return _make


@pytest.fixture()
def make_line():
    def _make(item, quantity=1):
        return CartLine(id=f"line-{item.id}", item_id=item.id, item=item, quantity=quantity)

    return _make


@pytest.fixture()
def make_coupon():
    def _make(
        code="PROMO10",
        discount="10",
        type=CouponKind.FIXED,
        category=CouponCategory.PROMOTIONAL,
        customer_id=None,
        **extra,
    ):
        if category == CouponCategory.EXCHANGE and customer_id is None:
            customer_id = CUSTOMER_ID
        fields = {
            "id": f"coupon-{code.lower()}",
            "code": code,
            "discount": Decimal(discount),
            "type": type,
            "category": category,
            "customer_id": customer_id,
            "expires_at": NOW + timedelta(days=30),
        }
        fields.update(extra)
        return Coupon(**fields)

    return _make


@pytest.fixture()
def seed_catalog(store):
    def _seed(*items):
        CatalogRepository(store).replace_all(list(items))
        return list(items)

    return _seed


@pytest.fixture()
def seed_coupons(store):
    def _seed(*coupons):
        CouponRepository(store).replace_all(list(coupons))
        return list(coupons)

    return _seed


@pytest.fixture()
def address():
    return Address(
        id="addr-1",
        customer_id=CUSTOMER_ID,
        first_name="Ana",
        last_name="Souza",
        address="Rua das Flores, 100",
        city="Campinas",
        state="SP",
        zip_code="13010-000",
        phone="19999990000",
        is_default=True,
    )
