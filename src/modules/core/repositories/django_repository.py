"""Django ORM implementation of ``IKeyValueStore``.

Each key maps to one ``StoredDocument`` row.  Conditional writes use a
single ``UPDATE ... WHERE version = expected`` so that two processes that
read the same catalog snapshot cannot both commit a decrement.
"""

from __future__ import annotations

from typing import Any

import structlog
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from modules.core.exceptions import StorageConflict
from modules.core.models import StoredDocument
from modules.core.repositories.interfaces import (
    MISSING_VERSION,
    IKeyValueStore,
    VersionedDocument,
)

logger = structlog.get_logger(__name__)


class DjangoKeyValueStore(IKeyValueStore):
    """Concrete key-value store backed by the ``stored_documents`` table."""

    def get(self, key: str, default: Any = None) -> Any:
        return self.get_versioned(key, default).value

    @transaction.atomic
    def put(self, key: str, value: Any) -> None:
        document = StoredDocument.objects.select_for_update().filter(key=key).first()
        if document is None:
            StoredDocument.objects.create(key=key, value=value)
            logger.info("storage.document_created", key=key)
            return
        document.value = value
        document.version = document.version + 1
        document.save(update_fields=["value", "version"])
        logger.debug("storage.document_written", key=key, version=document.version)

    @transaction.atomic
    def delete(self, key: str) -> bool:
        deleted, _ = StoredDocument.objects.filter(key=key).delete()
        if deleted:
            logger.info("storage.document_deleted", key=key)
        return bool(deleted)

    def get_versioned(self, key: str, default: Any = None) -> VersionedDocument:
        row = StoredDocument.objects.filter(key=key).values("value", "version").first()
        if row is None:
            return VersionedDocument(key=key, value=default, version=MISSING_VERSION)
        return VersionedDocument(key=key, value=row["value"], version=row["version"])

    def put_if_version(self, key: str, value: Any, expected_version: int) -> int:
        if expected_version == MISSING_VERSION:
            try:
                with transaction.atomic():
                    StoredDocument.objects.create(key=key, value=value)
            except IntegrityError:
                raise StorageConflict(
                    key, expected_version, self._current_version(key)
                ) from None
            logger.info("storage.document_created", key=key)
            return 1

        with transaction.atomic():
            updated = StoredDocument.objects.filter(
                key=key, version=expected_version
            ).update(
                value=value,
                version=F("version") + 1,
                updated_at=timezone.now(),
            )
        if not updated:
            actual = self._current_version(key)
            logger.warning(
                "storage.version_conflict",
                key=key,
                expected_version=expected_version,
                actual_version=actual,
            )
            raise StorageConflict(key, expected_version, actual)
        return expected_version + 1

    def _current_version(self, key: str) -> int:
        version = (
            StoredDocument.objects.filter(key=key)
            .values_list("version", flat=True)
            .first()
        )
        return MISSING_VERSION if version is None else version
