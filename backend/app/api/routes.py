from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, Query, status

from app.core.config import DATA_DIR, DEFAULT_USER_ID, STORAGE_BACKEND
from app.core.logging import get_logger
from app.repositories.base import TransactionRepository
from app.schemas.models import (
    ChartsResponse,
    ProjectionResponse,
    StatsResponse,
    Transaction,
    TransactionCreate,
    TransactionQuery,
    TransactionUpdate,
)
from app.services.transaction_service import SUGGESTED_CATEGORIES, TransactionService

logger = get_logger("expense_tracker.api")

router = APIRouter()

# Lazy initialization to avoid Firebase connection at import time (breaks tests)
_repo: TransactionRepository | None = None
_service: TransactionService | None = None


def get_repo() -> TransactionRepository:
    global _repo
    if _repo is None:
        if STORAGE_BACKEND == "firestore":
            from app.repositories.firestore_repo import FirestoreRepository

            _repo = FirestoreRepository()
        else:
            from app.repositories.local_repo import LocalRepository

            _repo = LocalRepository(DATA_DIR)
        logger.info(f"Using {type(_repo).__name__} as transaction store")
    return _repo


def get_service() -> TransactionService:
    global _service
    if _service is None:
        _service = TransactionService(get_repo())
    return _service


def get_user_id(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """Owner scope for the request; identity is asserted by the fronting gateway."""
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return DEFAULT_USER_ID


@router.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/transactions", response_model=list[Transaction])
def list_transactions(user_id: str = Depends(get_user_id)) -> list[Transaction]:
    """Get all transactions for the current user, newest first."""
    return get_service().list_transactions(user_id)


@router.post("/transactions", response_model=Transaction, status_code=status.HTTP_201_CREATED)
def create_transaction(
    payload: TransactionCreate,
    user_id: str = Depends(get_user_id),
) -> Transaction:
    return get_service().create_transaction(payload, user_id)


@router.get("/transactions/query", response_model=ProjectionResponse)
def query_transactions(
    query: Annotated[TransactionQuery, Query()],
    user_id: str = Depends(get_user_id),
) -> ProjectionResponse:
    """Filtered, searched, sorted and paginated transactions.

    Clients should request page 1 again whenever a filter changes.
    """
    page = get_service().query_transactions(query, user_id)
    return ProjectionResponse(
        items=page.items,
        total_count=page.total_count,
        total_pages=page.total_pages,
        page=page.page,
        page_size=page.page_size,
    )


@router.get("/transactions/stats", response_model=StatsResponse)
def get_stats(user_id: str = Depends(get_user_id)) -> StatsResponse:
    return get_service().get_stats(user_id)


@router.get("/transactions/charts", response_model=ChartsResponse)
def get_charts(user_id: str = Depends(get_user_id)) -> ChartsResponse:
    """Chart series: last-7-days trend, expense breakdown by category, monthly expenses."""
    return get_service().get_charts(user_id)


@router.get("/transactions/{transaction_id}", response_model=Transaction)
def get_transaction(
    transaction_id: str,
    user_id: str = Depends(get_user_id),
) -> Transaction:
    return get_service().get_transaction(transaction_id, user_id)


@router.put("/transactions/{transaction_id}", response_model=Transaction)
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    user_id: str = Depends(get_user_id),
) -> Transaction:
    return get_service().update_transaction(transaction_id, payload, user_id)


@router.delete("/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    user_id: str = Depends(get_user_id),
) -> dict[str, str]:
    get_service().delete_transaction(transaction_id, user_id)
    return {"status": "deleted", "transaction_id": transaction_id}


@router.get("/categories", response_model=list[str])
def get_categories() -> list[str]:
    """Suggested categories; transactions may still use any label."""
    return list(SUGGESTED_CATEGORIES)
