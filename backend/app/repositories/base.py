"""Transaction repository contract shared by every backing store."""

from __future__ import annotations

from typing import Any, Optional, Protocol

from app.schemas.models import Transaction
from app.services.view_engine import FilterCriteria


def to_document(transaction: Transaction) -> dict[str, Any]:
    """Storage form of a transaction.

    The amount is kept as a decimal string; the float form is only for HTTP
    responses.
    """
    document = transaction.model_dump(mode="json")
    document["amount"] = str(transaction.amount)
    return document


class TransactionRepository(Protocol):
    """Repository abstraction for transaction storage, scoped per user."""

    def list_transactions(
        self,
        user_id: str,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Transaction]:
        """Return the user's transactions in insertion order, optionally filtered."""
        ...

    def get_transaction(self, transaction_id: str, user_id: str) -> Transaction | None:
        ...

    def save_transaction(self, transaction: Transaction, user_id: str) -> Transaction:
        """Insert or replace a transaction by id."""
        ...

    def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        ...
