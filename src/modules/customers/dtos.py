"""Customer DTOs.

Read-only snapshots consumed by checkout.  Customer and address CRUD
lives outside the checkout core; only the validated objects matter here.

- ``Customer``: the shopper, with an optional CPF checked via *validate-docbr*.
- ``Address``: a saved shipping address, frozen into each order.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from validate_docbr import CPF


class Customer(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    cpf: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("cpf", mode="before")
    @classmethod
    def sanitize_cpf(cls, v: Optional[str]) -> Optional[str]:
        """Strip non-digit characters (accept formatted or raw input)."""
        if not isinstance(v, str):
            return v
        return re.sub(r"\D", "", v) or None

    @field_validator("cpf")
    @classmethod
    def cpf_must_be_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not CPF().validate(v):
            raise ValueError("Invalid CPF number.")
        return v

    @staticmethod
    def mask_document(raw_document: str) -> str:
        """Mask a document, showing only the last 4 digits."""
        suffix = raw_document[-4:] if raw_document else "????"
        return f"***{suffix}"


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    customer_id: str
    first_name: str
    last_name: str
    address: str
    city: str
    state: str
    zip_code: str
    phone: str = ""
    is_default: bool = False
    label: Optional[str] = None

    @property
    def region_hint(self) -> str:
        """Free text used for regional shipping rules."""
        return f"{self.city} {self.state}"
