"""Credit card number helpers.

Cards are stored masked (last four digits); nothing here encrypts.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import List, Optional

from modules.payments.constants import (
    BOLETO_FLAT_FEE,
    CARD_NAME_MIN_LENGTH,
    CARD_NUMBER_MAX_LENGTH,
    CARD_NUMBER_MIN_LENGTH,
    PROCESSING_FEE_RATES,
    CardBrand,
    PaymentMethod,
)

_NON_DIGITS = re.compile(r"\D")
_EXPIRY_FORMAT = re.compile(r"^\d{2}/\d{4}$")
_ELO_PREFIXES = re.compile(r"^(4011|4312|4389|4514|4573|5041|5066|5067|6277|6363|6504|6516)")


def _digits(value: str) -> str:
    return _NON_DIGITS.sub("", value or "")


def mask_card_number(card_number: str) -> str:
    return f"**** **** **** {_digits(card_number)[-4:]}"


def detect_card_brand(card_number: str) -> CardBrand:
    """Brand by prefix; unknown prefixes fall back to visa."""
    digits = _digits(card_number)
    if _ELO_PREFIXES.match(digits):
        return CardBrand.ELO
    if digits.startswith("4"):
        return CardBrand.VISA
    if re.match(r"^(5[1-5]|2[2-7])", digits):
        return CardBrand.MASTERCARD
    if re.match(r"^3[47]", digits):
        return CardBrand.AMEX
    return CardBrand.VISA


def validate_card_number(card_number: str) -> bool:
    """Length check plus the Luhn checksum."""
    digits = _digits(card_number)
    if not CARD_NUMBER_MIN_LENGTH <= len(digits) <= CARD_NUMBER_MAX_LENGTH:
        return False

    total = 0
    for position, char in enumerate(reversed(digits)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_expiry_date(expiry_date: str, today: Optional[date] = None) -> bool:
    """``MM/YYYY``, valid through the end of that month."""
    if not _EXPIRY_FORMAT.match(expiry_date or ""):
        return False
    month, year = (int(part) for part in expiry_date.split("/"))
    if not 1 <= month <= 12:
        return False
    today = today or date.today()
    return (year, month) >= (today.year, today.month)


def validate_cvv(cvv: str, brand: CardBrand) -> bool:
    expected = 4 if brand == CardBrand.AMEX else 3
    return len(_digits(cvv)) == expected


def validate_credit_card(
    card_number: str,
    card_name: str,
    expiry_date: str,
    cvv: str,
    today: Optional[date] = None,
) -> List[str]:
    """Return every problem with a new card's data (empty when valid)."""
    errors: List[str] = []

    if not (card_number or "").strip():
        errors.append("Card number is required")
    elif not validate_card_number(card_number):
        errors.append("Invalid card number")

    if not (card_name or "").strip():
        errors.append("Name on card is required")
    elif len(card_name.strip()) < CARD_NAME_MIN_LENGTH:
        errors.append(f"Name on card must have at least {CARD_NAME_MIN_LENGTH} characters")

    if not (expiry_date or "").strip():
        errors.append("Expiry date is required")
    elif not validate_expiry_date(expiry_date, today):
        errors.append("Invalid expiry date")

    if not (cvv or "").strip():
        errors.append("CVV is required")
    else:
        brand = detect_card_brand(card_number)
        if not validate_cvv(cvv, brand):
            length = 4 if brand == CardBrand.AMEX else 3
            errors.append(f"CVV must have {length} digits")

    return errors


def calculate_processing_fee(method: PaymentMethod, amount: Decimal) -> Decimal:
    if method == PaymentMethod.BOLETO:
        return BOLETO_FLAT_FEE
    return amount * PROCESSING_FEE_RATES.get(method, Decimal("0"))
