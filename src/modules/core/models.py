"""Base abstract model and the durable key-value document table.

Provides:
- ``BaseModel``: UUIDv7 primary key + created_at / updated_at timestamps.
- ``StoredDocument``: one JSON document per storefront key (``cards``,
  ``orders``, ...) with an integer ``version`` used for compare-and-swap
  writes.
"""

from __future__ import annotations

import uuid6
from django.db import models

# ---------------------------------------------------------------------------
# BaseModel
# ---------------------------------------------------------------------------


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


# ---------------------------------------------------------------------------
# Key-value documents
# ---------------------------------------------------------------------------


class StoredDocument(BaseModel):
    """A named JSON document.

    ``version`` starts at 1 on creation and is incremented by every
    write.  Writers that read a document and write it back pass the
    version they read; a mismatch means another writer got there first.
    """

    key = models.CharField(max_length=100, unique=True)
    value = models.JSONField(default=None, null=True)
    version = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "stored_documents"
        ordering = ["key"]

    def __str__(self) -> str:
        return f"{self.key} (v{self.version})"
