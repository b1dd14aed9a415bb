"""Typed access to list-shaped key-value documents.

Every storefront document (``cards``, ``coupons``, ``orders``, ...) is a
JSON array of records.  ``ListDocumentRepository`` turns those arrays
into pydantic models and back.

Reads degrade: a malformed payload reads as an empty list and records
that fail validation are skipped.  Writes never lose data: entries that
could not be parsed are written back unchanged after the caller's
records, and a document that is not a readable list is never
overwritten unless the repository sets ``overwrite_unreadable``.
"""

from __future__ import annotations

import json
from typing import Any, Generic, List, Tuple, Type, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from modules.core.exceptions import StorageError
from modules.core.repositories.interfaces import MISSING_VERSION, IKeyValueStore

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

_UNREADABLE = object()


class ListDocumentRepository(Generic[M]):
    """Base repository for one list document of ``model`` records."""

    key: str
    model: Type[M]

    # Scratch documents (the session cart) may be reset when unreadable.
    overwrite_unreadable: bool = False

    def __init__(self, store: IKeyValueStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def all(self) -> List[M]:
        """Return every valid record in the document."""
        try:
            raw = self._store.get(self.key, [])
        except ValueError:
            logger.exception("storage.document_unreadable", key=self.key)
            return []
        return self._parse(raw)

    def all_versioned(self) -> Tuple[List[M], int]:
        """Return the records with the document version they were read at.

        An undecodable document reads as ``([], MISSING_VERSION)``; any
        conditional write based on it is refused.
        """
        try:
            document = self._store.get_versioned(self.key, [])
        except ValueError:
            logger.exception("storage.document_unreadable", key=self.key)
            return [], MISSING_VERSION
        return self._parse(document.value), document.version

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def replace_all(self, records: List[M]) -> None:
        """Overwrite the document with *records*.

        Raises:
            StorageError: the stored document is unreadable.
        """
        self._store.put(self.key, self._dump(records) + self._unparsed_entries())

    def replace_all_if_version(self, records: List[M], expected_version: int) -> int:
        """Write *records* only if nobody wrote the document since it was read.

        Raises:
            StorageConflict: the document moved past *expected_version*.
            StorageError: the stored document is unreadable.
        """
        payload = self._dump(records) + self._unparsed_entries()
        return self._store.put_if_version(self.key, payload, expected_version)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _parse(self, raw: Any) -> List[M]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning(
                "storage.document_malformed",
                key=self.key,
                payload_type=type(raw).__name__,
            )
            return []

        records: List[M] = []
        for index, entry in enumerate(raw):
            try:
                records.append(self.model.model_validate(entry))
            except ValidationError as exc:
                logger.warning(
                    "storage.record_skipped",
                    key=self.key,
                    index=index,
                    error_count=exc.error_count(),
                )
        return records

    def _unparsed_entries(self) -> List[Any]:
        """Raw entries of the stored document that do not validate."""
        try:
            raw = self._store.get(self.key, [])
        except ValueError:
            raw = _UNREADABLE

        if raw is None:
            return []
        if not isinstance(raw, list):
            if self.overwrite_unreadable:
                logger.warning("storage.unreadable_document_reset", key=self.key)
                return []
            logger.error("storage.write_refused", key=self.key)
            raise StorageError(
                f"Document '{self.key}' is unreadable and will not be overwritten."
            )

        kept = [entry for entry in raw if not self._is_valid(entry)]
        if kept:
            logger.warning("storage.unparsed_entries_kept", key=self.key, count=len(kept))
        return kept

    def _is_valid(self, entry: Any) -> bool:
        try:
            self.model.model_validate(entry)
        except ValidationError:
            return False
        return True

    @staticmethod
    def _dump(records: List[M]) -> List[Any]:
        return [json.loads(record.model_dump_json()) for record in records]
