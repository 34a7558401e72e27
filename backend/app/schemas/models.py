from datetime import date as Date
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, StringConstraints

from app.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

# Decimal internally, plain JSON number on the wire
Amount = Annotated[
    Decimal,
    Field(ge=0, description="Non-negative amount."),
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Stripped before the length check, so blank labels are rejected
Category = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class TransactionType(str, Enum):
    """Income/expense classification of a transaction."""

    INCOME = "income"
    EXPENSE = "expense"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Transaction(BaseModel):
    """A single recorded income or expense event."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque unique identifier.")
    type: TransactionType
    amount: Amount
    category: str
    description: Optional[str] = None
    date: Date


class TransactionCreate(BaseModel):
    type: TransactionType = TransactionType.EXPENSE
    amount: Amount
    category: Category
    description: Optional[str] = None
    date: Optional[Date] = Field(default=None, description="Defaults to today.")


class TransactionUpdate(BaseModel):
    """Partial update; only fields that are set replace stored values."""

    type: Optional[TransactionType] = None
    amount: Optional[Amount] = None
    category: Optional[Category] = None
    description: Optional[str] = None
    date: Optional[Date] = None


class TransactionQuery(BaseModel):
    """Parameters of one projection request.

    Date bounds stay raw strings: unparseable values are ignored rather than
    rejected.
    """

    search: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = Field(default=None, description="'income', 'expense' or 'all'.")
    category: Optional[str] = Field(default=None, description="Exact category or 'All'.")
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    sort_key: str = "date"
    sort_direction: SortDirection = SortDirection.DESC
    page: int = 1
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)


class ProjectionResponse(BaseModel):
    items: list[Transaction]
    total_count: int
    total_pages: int
    page: int
    page_size: int


class StatsResponse(BaseModel):
    total_income: float
    total_expenses: float
    net_balance: float


class DailyTrendPoint(BaseModel):
    date: Date
    label: str = Field(..., description="Short weekday name, e.g. 'Mon'.")
    income: float
    expense: float


class CategoryTotal(BaseModel):
    name: str
    amount: float
    trend: float


class MonthlyTotal(BaseModel):
    month: str = Field(..., description="Calendar month as YYYY-MM.")
    amount: float


class ChartsResponse(BaseModel):
    daily_trend: list[DailyTrendPoint]
    category_breakdown: list[CategoryTotal]
    monthly_trend: list[MonthlyTotal]
