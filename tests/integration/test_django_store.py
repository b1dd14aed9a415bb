"""Integration tests for the Django-backed key-value store."""

import pytest

from modules.catalog.services import StockService
from modules.core.exceptions import StorageConflict
from modules.core.models import StoredDocument
from modules.core.repositories.django_repository import DjangoKeyValueStore
from modules.core.repositories.interfaces import MISSING_VERSION

pytestmark = [pytest.mark.integration, pytest.mark.django_db]


@pytest.fixture()
def kv():
    return DjangoKeyValueStore()


class TestDjangoKeyValueStore:
    def test_put_creates_then_updates(self, kv):
        kv.put("cart", [])
        kv.put("cart", [{"id": "line-1"}])
        document = kv.get_versioned("cart")
        assert document.value == [{"id": "line-1"}]
        assert document.version == 2
        assert StoredDocument.objects.count() == 1

    def test_missing_key(self, kv):
        assert kv.get("orders", []) == []
        assert kv.get_versioned("orders").version == MISSING_VERSION

    def test_conditional_create_conflicts_with_existing_row(self, kv):
        kv.put("orders", [])
        with pytest.raises(StorageConflict) as exc_info:
            kv.put_if_version("orders", [1], MISSING_VERSION)
        assert exc_info.value.actual_version == 1

    def test_conditional_update(self, kv):
        assert kv.put_if_version("orders", [], MISSING_VERSION) == 1
        assert kv.put_if_version("orders", [1], 1) == 2
        with pytest.raises(StorageConflict):
            kv.put_if_version("orders", [2], 1)
        assert kv.get("orders") == [1]

    def test_delete(self, kv):
        kv.put("cart", [])
        assert kv.delete("cart") is True
        assert kv.delete("cart") is False


def test_stock_service_over_django_store(kv, make_item, make_line):
    item = make_item(stock=3)
    kv.put("cards", [item.model_dump(mode="json")])
    stock = StockService(kv)

    assert stock.decrease_stock([make_line(item, 2)]).success is True
    assert stock.decrease_stock([make_line(item, 2)]).success is False
    assert stock.get_available_stock(item.id) == 1
