"""Storage exceptions.

Business conditions (invalid cart, insufficient stock, illegal
transition) are reported through result objects and never raised.
These exceptions cover infrastructure failures only.
"""

from __future__ import annotations


class StorageError(Exception):
    """A key-value document could not be read or written."""


class StorageConflict(StorageError):
    """A compare-and-swap write lost against a concurrent writer."""

    def __init__(self, key: str, expected_version: int, actual_version: int) -> None:
        super().__init__(
            f"Document '{key}' is at version {actual_version}, "
            f"expected {expected_version}."
        )
        self.key = key
        self.expected_version = expected_version
        self.actual_version = actual_version
