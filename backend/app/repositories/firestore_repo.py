"""
Firestore Repository

Repository implementation using Firestore for data persistence.
Supports multi-tenancy by nesting transactions under their owner.

Data Structure:
    users/{user_id}/transactions/{transaction_id} - Individual transactions
"""

from datetime import datetime, timezone
from typing import Any, Optional

import firebase_admin
from firebase_admin import firestore
from google.cloud.firestore_v1 import FieldFilter

from app.core.logging import get_logger
from app.repositories.base import to_document
from app.schemas.models import Transaction
from app.services.view_engine import (
    ALL_CATEGORIES,
    FilterCriteria,
    filter_transactions,
    normalize_type_filter,
)

logger = get_logger("expense_tracker.repositories.firestore")


class FirestoreRepository:
    """Repository using Firestore for data persistence with multi-tenant support."""

    # Internal ordering field, stripped before validation
    CREATED_FIELD = "_created_at"

    def __init__(self) -> None:
        # Initialize Firebase Admin SDK with Application Default Credentials
        if not firebase_admin._apps:
            firebase_admin.initialize_app()

        self.db = firestore.client()

        # Collection references
        self.users_collection = "users"
        self.transactions_collection = "transactions"

    def _transactions_ref(self, user_id: str):
        return (
            self.db.collection(self.users_collection)
            .document(user_id)
            .collection(self.transactions_collection)
        )

    def _to_transaction(self, data: dict[str, Any]) -> Transaction:
        data.pop(self.CREATED_FIELD, None)
        return Transaction.model_validate(data)

    # =========================================================================
    # Transaction Methods
    # =========================================================================

    def list_transactions(
        self,
        user_id: str,
        criteria: Optional[FilterCriteria] = None,
    ) -> list[Transaction]:
        """
        List a user's transactions in insertion order.

        Type and category criteria are pushed down to Firestore as equality
        filters; text and date criteria are applied in process.

        Args:
            user_id: Owner's user ID
            criteria: Optional filter criteria

        Returns:
            Matching transactions
        """
        query = self._transactions_ref(user_id)
        if criteria is not None:
            wanted_type = normalize_type_filter(criteria.type)
            if wanted_type:
                query = query.where(filter=FieldFilter("type", "==", wanted_type))
            if criteria.category and criteria.category != ALL_CATEGORIES:
                query = query.where(filter=FieldFilter("category", "==", criteria.category))

        documents = [doc.to_dict() for doc in query.stream()]
        documents.sort(key=lambda d: d.get(self.CREATED_FIELD) or "")
        transactions = [self._to_transaction(d) for d in documents]
        logger.debug(f"Loaded {len(transactions)} transactions from Firestore for user {user_id}")

        if criteria is not None:
            transactions = filter_transactions(transactions, criteria)
        return transactions

    def get_transaction(self, transaction_id: str, user_id: str) -> Transaction | None:
        doc = self._transactions_ref(user_id).document(transaction_id).get()
        if not doc.exists:
            return None
        return self._to_transaction(doc.to_dict())

    def save_transaction(self, transaction: Transaction, user_id: str) -> Transaction:
        """
        Insert or replace a transaction document.

        The creation timestamp of an existing document is preserved so that
        updates do not move a transaction in insertion order.
        """
        doc_ref = self._transactions_ref(user_id).document(transaction.id)
        existing = doc_ref.get()

        payload = to_document(transaction)
        if existing.exists:
            payload[self.CREATED_FIELD] = existing.to_dict().get(self.CREATED_FIELD)
        else:
            payload[self.CREATED_FIELD] = datetime.now(timezone.utc).isoformat()

        doc_ref.set(payload)
        return transaction

    def delete_transaction(self, transaction_id: str, user_id: str) -> bool:
        doc_ref = self._transactions_ref(user_id).document(transaction_id)
        if not doc_ref.get().exists:
            return False
        doc_ref.delete()
        return True
