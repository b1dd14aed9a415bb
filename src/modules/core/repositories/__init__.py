"""Key-value storage backends and typed document repositories."""

from modules.core.repositories.documents import ListDocumentRepository
from modules.core.repositories.interfaces import (
    MISSING_VERSION,
    IKeyValueStore,
    VersionedDocument,
)
from modules.core.repositories.memory import InMemoryKeyValueStore

__all__ = [
    "MISSING_VERSION",
    "IKeyValueStore",
    "InMemoryKeyValueStore",
    "ListDocumentRepository",
    "VersionedDocument",
]
