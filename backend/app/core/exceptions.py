"""Custom exceptions for the Expense Tracker application."""

from __future__ import annotations


class ExpenseTrackerError(Exception):
    """Base exception for all Expense Tracker errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidArgumentError(ExpenseTrackerError):
    """Raised when a well-typed argument carries an unusable value."""

    pass


class InvalidSortKeyError(InvalidArgumentError):
    """Raised when a projection is requested with an unsortable field."""

    def __init__(self, key: str, allowed: tuple[str, ...]) -> None:
        super().__init__(
            f"Cannot sort by '{key}'. Allowed keys: {', '.join(allowed)}",
            details={"key": key, "allowed": list(allowed)},
        )
        self.key = key


class ValidationError(ExpenseTrackerError):
    """Raised when input validation fails."""

    pass


class TransactionNotFoundError(ExpenseTrackerError):
    """Raised when a transaction is not found."""

    pass


class StorageError(ExpenseTrackerError):
    """Raised when the backing store cannot be read or written."""

    pass
