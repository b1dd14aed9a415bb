"""Read-only access to saved credit cards."""

from __future__ import annotations

from typing import List

from modules.core.repositories.documents import ListDocumentRepository
from modules.payments.constants import CREDIT_CARDS_DOCUMENT_KEY
from modules.payments.dtos import CreditCard


class CreditCardRepository(ListDocumentRepository[CreditCard]):
    """The ``customer_credit_cards`` document."""

    key = CREDIT_CARDS_DOCUMENT_KEY
    model = CreditCard

    def for_customer(self, customer_id: str) -> List[CreditCard]:
        return [card for card in self.all() if card.customer_id == customer_id]
