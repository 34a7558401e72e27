"""Pytest fixtures and configuration."""

from __future__ import annotations

import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Generator
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

# Set environment variables before importing app modules
os.environ["STORAGE_BACKEND"] = "local"
os.environ["DEFAULT_USER_ID"] = "local"

from app.repositories.local_repo import LocalRepository  # noqa: E402
from app.schemas.models import Transaction, TransactionType  # noqa: E402
from app.services.transaction_service import TransactionService  # noqa: E402


def make_transaction(
    id: str,
    when: str,
    amount: str | int | float,
    type: str = "expense",
    category: str = "Other",
    description: str | None = None,
) -> Transaction:
    return Transaction(
        id=id,
        type=TransactionType(type),
        amount=Decimal(str(amount)),
        category=category,
        description=description,
        date=date.fromisoformat(when),
    )


@pytest.fixture
def scenario_transactions() -> list[Transaction]:
    """Three records with a tie on date (1 vs 3) and on category."""
    return [
        make_transaction("1", "2024-01-05", 50, "expense", "Food"),
        make_transaction("2", "2024-01-01", 200, "income", "Salary"),
        make_transaction("3", "2024-01-05", 10, "expense", "Food"),
    ]


@pytest.fixture
def sample_transactions() -> list[Transaction]:
    """A mixed ledger with duplicate keys on every sortable field."""
    return [
        make_transaction("t01", "2024-01-15", "99.99", "expense", "Shopping", "Amazon Purchase"),
        make_transaction("t02", "2024-01-16", "5000.00", "income", "Salary", "Salary Deposit"),
        make_transaction("t03", "2024-01-17", "5.50", "expense", "Food", "Starbucks Coffee"),
        make_transaction("t04", "2024-01-18", "150.00", "expense", "Utilities", "Electric Bill"),
        make_transaction("t05", "2024-01-17", "12.00", "expense", "Food", None),
        make_transaction("t06", "2024-02-01", "800.00", "income", "Freelance", "Logo design"),
        make_transaction("t07", "2024-02-03", "5.50", "expense", "Food", "Bakery"),
        make_transaction("t08", "2024-02-03", "45.00", "expense", "Transportation", "Fuel"),
        make_transaction("t09", "2024-02-10", "150.00", "expense", "Shopping", "shoes"),
        make_transaction("t10", "2024-01-15", "20.00", "expense", "Entertainment", "Cinema"),
        make_transaction("t11", "2024-02-14", "60.00", "expense", "Food", "Dinner for two"),
        make_transaction("t12", "2024-03-01", "5000.00", "income", "Salary", "Salary Deposit"),
    ]


@pytest.fixture
def temp_data_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def local_repo(temp_data_dir: Path) -> LocalRepository:
    return LocalRepository(temp_data_dir)


@pytest.fixture
def service(local_repo: LocalRepository) -> TransactionService:
    return TransactionService(local_repo)


@pytest.fixture
def client(service: TransactionService) -> Generator[TestClient, None, None]:
    """Test client backed by a throwaway local store."""
    with patch("app.api.routes.get_service", return_value=service):
        from app.main import app

        with TestClient(app) as test_client:
            yield test_client
