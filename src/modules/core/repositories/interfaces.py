"""Key-value storage interface (Dependency Inversion Principle).

Every storefront component persists through ``IKeyValueStore``: named,
JSON-serializable documents that are read and written whole.  Service
code depends on this abstraction, never on a concrete backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

MISSING_VERSION = 0


@dataclass(frozen=True)
class VersionedDocument:
    """A document value together with the version it was read at.

    ``version`` is ``MISSING_VERSION`` when the key does not exist.
    """

    key: str
    value: Any
    version: int


class IKeyValueStore(ABC):
    """Base key-value store contract."""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the document stored under *key*, or *default*."""

    @abstractmethod
    def put(self, key: str, value: Any) -> None:
        """Store *value* under *key* unconditionally."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove *key*; return ``True`` if it existed."""

    @abstractmethod
    def get_versioned(self, key: str, default: Any = None) -> VersionedDocument:
        """Return the document with its current version."""

    @abstractmethod
    def put_if_version(self, key: str, value: Any, expected_version: int) -> int:
        """Store *value* only if *key* is still at *expected_version*.

        Returns the new version.

        Raises:
            StorageConflict: another writer changed the document first.
        """
