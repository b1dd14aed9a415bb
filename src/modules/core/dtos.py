"""Shared result DTOs.

Every validator in the storefront returns a ``ValidationResult``: a
validity flag plus human-readable errors (blocking) and warnings
(informational).  Callers branch on ``valid``; nothing is raised.
"""

from __future__ import annotations

from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field


class ValidationResult(BaseModel):
    """Immutable outcome of a validation pass."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @classmethod
    def from_messages(
        cls, errors: Iterable[str], warnings: Iterable[str] = ()
    ) -> ValidationResult:
        errors = list(errors)
        return cls(valid=not errors, errors=errors, warnings=list(warnings))

    @classmethod
    def merge(cls, *results: ValidationResult) -> ValidationResult:
        """Concatenate errors and warnings of every result, in order."""
        errors: List[str] = []
        warnings: List[str] = []
        for result in results:
            errors.extend(result.errors)
            warnings.extend(result.warnings)
        return cls.from_messages(errors, warnings)
