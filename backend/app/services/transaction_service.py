from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional
from uuid import uuid4

import pandas as pd

from app.core.exceptions import InvalidSortKeyError, TransactionNotFoundError
from app.core.logging import LogContext, get_logger
from app.core.utils import today
from app.repositories.base import TransactionRepository
from app.schemas.models import (
    ChartsResponse,
    SortDirection,
    StatsResponse,
    Transaction,
    TransactionCreate,
    TransactionQuery,
    TransactionType,
    TransactionUpdate,
)
from app.services.view_engine import (
    Page,
    build_projection,
    criteria_from_query,
    sort_transactions,
)

logger = get_logger("expense_tracker.services.transaction")

SUGGESTED_CATEGORIES = [
    "Salary",
    "Freelance",
    "Investments",
    "Food",
    "Transportation",
    "Utilities",
    "Entertainment",
    "Shopping",
    "Healthcare",
    "Other",
]


class TransactionService:
    DEFAULT_SORT_KEY = "date"
    DEFAULT_SORT_DIRECTION = SortDirection.DESC
    TREND_DAYS = 7

    def __init__(self, repository: TransactionRepository) -> None:
        self.repository = repository

    # =========================================================================
    # CRUD
    # =========================================================================

    def list_transactions(self, user_id: str) -> list[Transaction]:
        """All of the user's transactions, newest first."""
        transactions = self.repository.list_transactions(user_id)
        return sort_transactions(transactions, self.DEFAULT_SORT_KEY, self.DEFAULT_SORT_DIRECTION)

    def create_transaction(self, payload: TransactionCreate, user_id: str) -> Transaction:
        transaction = Transaction(
            id=str(uuid4()),
            type=payload.type,
            amount=payload.amount,
            category=payload.category,
            description=payload.description,
            date=payload.date or today(),
        )
        with LogContext(logger, "create_transaction", user_id=user_id, transaction_id=transaction.id):
            return self.repository.save_transaction(transaction, user_id)

    def get_transaction(self, transaction_id: str, user_id: str) -> Transaction:
        """Retrieve a single transaction.

        Raises:
            TransactionNotFoundError: If the user has no transaction with this id
        """
        logger.debug(f"Retrieving transaction: {transaction_id}")
        transaction = self.repository.get_transaction(transaction_id, user_id)
        if transaction is None:
            logger.warning(f"Transaction not found: {transaction_id}")
            raise TransactionNotFoundError(
                "Transaction not found.", details={"transaction_id": transaction_id}
            )
        return transaction

    def update_transaction(
        self,
        transaction_id: str,
        payload: TransactionUpdate,
        user_id: str,
    ) -> Transaction:
        """Apply a partial update; unset or null fields keep their stored value."""
        existing = self.get_transaction(transaction_id, user_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return existing

        updated = existing.model_copy(update=changes)
        with LogContext(
            logger,
            "update_transaction",
            user_id=user_id,
            transaction_id=transaction_id,
            fields=sorted(changes),
        ):
            return self.repository.save_transaction(updated, user_id)

    def delete_transaction(self, transaction_id: str, user_id: str) -> None:
        with LogContext(logger, "delete_transaction", user_id=user_id, transaction_id=transaction_id):
            if not self.repository.delete_transaction(transaction_id, user_id):
                raise TransactionNotFoundError(
                    "Transaction not found.", details={"transaction_id": transaction_id}
                )

    # =========================================================================
    # Projection
    # =========================================================================

    def query_transactions(
        self,
        query: TransactionQuery,
        user_id: str,
        as_of: Optional[date] = None,
    ) -> Page:
        """Filtered, searched, sorted and paginated view of the user's transactions.

        An unknown sort key falls back to newest-first instead of failing.
        """
        # Stores may push down only part of the criteria; the projection re-applies all of them.
        records = self.repository.list_transactions(user_id, criteria_from_query(query, as_of))
        try:
            return build_projection(records, query, as_of=as_of)
        except InvalidSortKeyError as e:
            logger.warning(f"{e.message}; falling back to '{self.DEFAULT_SORT_KEY}'")
            fallback = query.model_copy(
                update={
                    "sort_key": self.DEFAULT_SORT_KEY,
                    "sort_direction": self.DEFAULT_SORT_DIRECTION,
                }
            )
            return build_projection(records, fallback, as_of=as_of)

    # =========================================================================
    # Reporting
    # =========================================================================

    def get_stats(self, user_id: str) -> StatsResponse:
        return self._build_stats(self.repository.list_transactions(user_id))

    def get_charts(self, user_id: str, as_of: Optional[date] = None) -> ChartsResponse:
        transactions = self.repository.list_transactions(user_id)
        return ChartsResponse(**self._build_charts(transactions, as_of or today()))

    @staticmethod
    def _build_stats(transactions: list[Transaction]) -> StatsResponse:
        income = sum(
            (t.amount for t in transactions if t.type is TransactionType.INCOME), Decimal("0")
        )
        expenses = sum(
            (t.amount for t in transactions if t.type is TransactionType.EXPENSE), Decimal("0")
        )
        return StatsResponse(
            total_income=round(float(income), 2),
            total_expenses=round(float(expenses), 2),
            net_balance=round(float(income - expenses), 2),
        )

    @staticmethod
    def _build_charts(transactions: list[Transaction], as_of: date) -> dict[str, Any]:
        days = pd.date_range(end=pd.Timestamp(as_of), periods=TransactionService.TREND_DAYS, freq="D")

        df = pd.DataFrame(
            [
                {
                    "date": t.date,
                    "type": t.type.value,
                    "category": t.category,
                    "amount": float(t.amount),
                }
                for t in transactions
            ],
            columns=["date", "type", "category", "amount"],
        )
        df["date"] = pd.to_datetime(df["date"])

        income_df = df[df["type"] == TransactionType.INCOME.value]
        expense_df = df[df["type"] == TransactionType.EXPENSE.value]
        daily_income = income_df.groupby("date")["amount"].sum().reindex(days, fill_value=0.0)
        daily_expense = expense_df.groupby("date")["amount"].sum().reindex(days, fill_value=0.0)

        daily_trend = [
            {
                "date": day.date(),
                "label": day.strftime("%a"),
                "income": round(float(income), 2),
                "expense": round(float(expense), 2),
            }
            for day, income, expense in zip(days, daily_income.tolist(), daily_expense.tolist())
        ]

        breakdown = expense_df.groupby("category")["amount"].sum().sort_values(ascending=False, kind="stable")
        peak = float(breakdown.max()) if not breakdown.empty else 0.0
        steps = len(breakdown) - 1
        category_breakdown = [
            {
                "name": name,
                "amount": round(float(amount), 2),
                "trend": round(peak * (1 - index / steps), 2) if steps else round(peak, 2),
            }
            for index, (name, amount) in enumerate(breakdown.items())
        ]

        monthly = expense_df.groupby(expense_df["date"].dt.strftime("%Y-%m"))["amount"].sum().sort_index()
        monthly_trend = [
            {"month": month, "amount": round(float(amount), 2)} for month, amount in monthly.items()
        ]

        return {
            "daily_trend": daily_trend,
            "category_breakdown": category_breakdown,
            "monthly_trend": monthly_trend,
        }
