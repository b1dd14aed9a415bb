"""Payment domain constants."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

CREDIT_CARDS_DOCUMENT_KEY = "customer_credit_cards"


class PaymentMethod(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    PIX = "pix"
    BOLETO = "boleto"


class CardBrand(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    ELO = "elo"
    AMEX = "amex"


# Percentage fees per method; boleto charges a flat fee instead.
PROCESSING_FEE_RATES = {
    PaymentMethod.CREDIT: Decimal("0.03"),
    PaymentMethod.DEBIT: Decimal("0.015"),
    PaymentMethod.PIX: Decimal("0"),
}
BOLETO_FLAT_FEE = Decimal("2.50")

CARD_NUMBER_MIN_LENGTH = 13
CARD_NUMBER_MAX_LENGTH = 19
CARD_NAME_MIN_LENGTH = 3
