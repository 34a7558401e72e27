"""
Transaction View Engine

Pure functions that turn a collection of transactions into the filtered,
searched, sorted and paginated projection shown to the user. Nothing here
performs I/O or keeps state between calls; inputs are never mutated.
"""

from __future__ import annotations

import operator
from bisect import bisect_left
from dataclasses import dataclass, field
from datetime import date
from math import ceil
from typing import Any, Callable, Optional, Sequence

from app.core.exceptions import InvalidArgumentError, InvalidSortKeyError
from app.core.logging import get_logger
from app.core.utils import parse_date, render_date, today
from app.schemas.models import SortDirection, Transaction, TransactionQuery

logger = get_logger("expense_tracker.services.view_engine")

SORTABLE_FIELDS: tuple[str, ...] = ("date", "amount", "category", "description", "type")
SEARCH_FIELDS: tuple[str, ...] = ("category", "description", "date")

ALL_TYPES = "all"
ALL_CATEGORIES = "All"


@dataclass(frozen=True)
class FilterCriteria:
    """Conjunctive filter; ``None`` (or the "all" sentinels) pass everything."""

    text: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    date_from: Any = None
    date_to: Any = None
    # Reference day for an unset upper bound; today when None
    as_of: Optional[date] = None


@dataclass(frozen=True)
class Page:
    items: list[Transaction] = field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total_count: int = 0
    total_pages: int = 0


# =============================================================================
# Ordering
# =============================================================================


def _sort_value(transaction: Transaction, key: str) -> Any:
    value = getattr(transaction, key)
    if value is None:
        return ""
    if key == "type":
        return value.value
    return value


def _normalize_direction(direction: SortDirection | str) -> SortDirection:
    try:
        return SortDirection(direction)
    except ValueError:
        raise InvalidArgumentError(
            f"Invalid sort direction '{direction}'. Use 'asc' or 'desc'.",
            details={"direction": str(direction)},
        ) from None


def _merge(
    left: list[Transaction],
    right: list[Transaction],
    key: str,
    prefer: Callable[[Any, Any], bool],
) -> list[Transaction]:
    """Merge two ordered runs, taking from ``right`` only on strict preference."""
    merged: list[Transaction] = []
    i = j = 0
    while i < len(left) and j < len(right):
        if prefer(_sort_value(right[j], key), _sort_value(left[i], key)):
            merged.append(right[j])
            j += 1
        else:
            merged.append(left[i])
            i += 1
    merged.extend(left[i:])
    merged.extend(right[j:])
    return merged


def _merge_sort(
    records: list[Transaction],
    key: str,
    prefer: Callable[[Any, Any], bool],
) -> list[Transaction]:
    if len(records) <= 1:
        return list(records)
    middle = len(records) // 2
    return _merge(
        _merge_sort(records[:middle], key, prefer),
        _merge_sort(records[middle:], key, prefer),
        key,
        prefer,
    )


def sort_transactions(
    records: Sequence[Transaction],
    key: str,
    direction: SortDirection | str = SortDirection.ASC,
) -> list[Transaction]:
    """Stable merge sort of ``records`` by ``key``.

    Equal keys keep their input order in both directions; the direction only
    flips the comparison.

    Raises:
        InvalidSortKeyError: ``key`` is not one of ``SORTABLE_FIELDS``
        InvalidArgumentError: ``direction`` is neither asc nor desc
    """
    if key not in SORTABLE_FIELDS:
        raise InvalidSortKeyError(key, SORTABLE_FIELDS)
    resolved = _normalize_direction(direction)

    prefer = operator.lt if resolved is SortDirection.ASC else operator.gt
    return _merge_sort(list(records), key, prefer)


# =============================================================================
# Free-text search
# =============================================================================


def _search_text(transaction: Transaction, field_name: str) -> str:
    if field_name == "date":
        return render_date(transaction.date)
    return str(getattr(transaction, field_name) or "").lower()


def search_transactions(records: Sequence[Transaction], term: Optional[str]) -> list[Transaction]:
    """Case-insensitive substring search over category, description and date.

    Per field, records are ordered by that field's text and scanned outward
    from where ``term`` would sit in that order (right to the end, then left
    to the start). Every record is visited, so the match set is the same as a
    linear scan. Results come back in discovery order, each record once.
    """
    if term is None or not term.strip():
        return list(records)

    needle = term.lower()
    found: list[Transaction] = []
    seen: set[str] = set()

    for field_name in SEARCH_FIELDS:
        ordered = sorted(records, key=lambda t: _search_text(t, field_name))
        keys = [_search_text(t, field_name) for t in ordered]
        start = bisect_left(keys, needle)

        scan_order = list(range(start, len(ordered))) + list(range(start - 1, -1, -1))
        for index in scan_order:
            candidate = ordered[index]
            if needle in keys[index] and candidate.id not in seen:
                seen.add(candidate.id)
                found.append(candidate)

    logger.debug(f"Search '{term}' matched {len(found)}/{len(records)} transactions")
    return found


# =============================================================================
# Filtering
# =============================================================================


def _resolve_bound(value: Any, default: date, label: str) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    parsed = parse_date(value)
    if parsed is None:
        logger.debug(f"Ignoring unparseable {label} bound: {value!r}")
        return default
    return parsed


def normalize_type_filter(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(getattr(value, "value", value)).strip().lower()
    if not text or text == ALL_TYPES:
        return None
    return text


def filter_transactions(
    records: Sequence[Transaction],
    criteria: Optional[FilterCriteria] = None,
    *,
    as_of: Optional[date] = None,
) -> list[Transaction]:
    """Keep the records that satisfy every active criterion, in input order.

    An unset lower date bound means "since the beginning", an unset upper
    bound means "up to ``as_of``" (the criteria's ``as_of``, then today).
    """
    criteria = criteria or FilterCriteria()

    text = (criteria.text or "").lower()
    wanted_type = normalize_type_filter(criteria.type)
    wanted_category = criteria.category
    if wanted_category == ALL_CATEGORIES or wanted_category == "":
        wanted_category = None
    start = _resolve_bound(criteria.date_from, date.min, "lower")
    end = _resolve_bound(criteria.date_to, as_of or criteria.as_of or today(), "upper")

    results: list[Transaction] = []
    for transaction in records:
        if text and not (
            text in (transaction.description or "").lower()
            or text in transaction.category.lower()
        ):
            continue
        if wanted_type and transaction.type.value != wanted_type:
            continue
        if wanted_category is not None and transaction.category != wanted_category:
            continue
        if not start <= transaction.date <= end:
            continue
        results.append(transaction)
    return results


# =============================================================================
# Pagination & projection
# =============================================================================


def paginate(records: Sequence[Transaction], page_size: int, page: int = 1) -> Page:
    """Slice one page out of ``records``; out-of-range pages are empty."""
    if page_size < 1:
        raise InvalidArgumentError(
            f"page_size must be at least 1, got {page_size}",
            details={"page_size": page_size},
        )

    total_count = len(records)
    total_pages = ceil(total_count / page_size)
    if page < 1:
        items: list[Transaction] = []
    else:
        items = list(records[(page - 1) * page_size : page * page_size])

    return Page(
        items=items,
        page=page,
        page_size=page_size,
        total_count=total_count,
        total_pages=total_pages,
    )


def criteria_from_query(query: TransactionQuery, as_of: Optional[date] = None) -> FilterCriteria:
    return FilterCriteria(
        text=query.text,
        type=query.type,
        category=query.category,
        date_from=query.date_from,
        date_to=query.date_to,
        as_of=as_of,
    )


def build_projection(
    records: Sequence[Transaction],
    query: TransactionQuery,
    *,
    as_of: Optional[date] = None,
) -> Page:
    """Filter, search, sort and paginate ``records`` for a single request.

    Sorting runs after searching because search returns discovery order.
    """
    filtered = filter_transactions(records, criteria_from_query(query, as_of))
    matched = search_transactions(filtered, query.search)
    ordered = sort_transactions(matched, query.sort_key, query.sort_direction)
    return paginate(ordered, query.page_size, query.page)
