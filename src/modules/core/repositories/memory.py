"""In-memory implementation of ``IKeyValueStore``.

Values are round-tripped through JSON on every write so callers can
never share mutable state with the store, and so that anything stored
here would also be storable by the Django backend.
"""

from __future__ import annotations

import json
import threading
from typing import Any, Dict, Tuple

import structlog

from modules.core.exceptions import StorageConflict
from modules.core.repositories.interfaces import (
    MISSING_VERSION,
    IKeyValueStore,
    VersionedDocument,
)

logger = structlog.get_logger(__name__)


class InMemoryKeyValueStore(IKeyValueStore):
    """Dict-backed store guarded by a lock."""

    def __init__(self) -> None:
        self._documents: Dict[str, Tuple[str, int]] = {}
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        return self.get_versioned(key, default).value

    def put(self, key: str, value: Any) -> None:
        raw = json.dumps(value)
        with self._lock:
            _, version = self._documents.get(key, (None, MISSING_VERSION))
            self._documents[key] = (raw, version + 1)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._documents.pop(key, None) is not None

    def get_versioned(self, key: str, default: Any = None) -> VersionedDocument:
        with self._lock:
            entry = self._documents.get(key)
        if entry is None:
            return VersionedDocument(key=key, value=default, version=MISSING_VERSION)
        raw, version = entry
        return VersionedDocument(key=key, value=json.loads(raw), version=version)

    def put_if_version(self, key: str, value: Any, expected_version: int) -> int:
        raw = json.dumps(value)
        with self._lock:
            _, current = self._documents.get(key, (None, MISSING_VERSION))
            if current != expected_version:
                logger.warning(
                    "storage.version_conflict",
                    key=key,
                    expected_version=expected_version,
                    actual_version=current,
                )
                raise StorageConflict(key, expected_version, current)
            self._documents[key] = (raw, current + 1)
            return current + 1

    def put_raw(self, key: str, raw: str) -> None:
        """Store an already-serialized payload as-is (used to load fixtures)."""
        with self._lock:
            _, version = self._documents.get(key, (None, MISSING_VERSION))
            self._documents[key] = (raw, version + 1)
