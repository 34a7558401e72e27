"""Unit tests for the transaction view engine."""

from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import InvalidArgumentError, InvalidSortKeyError
from app.core.utils import render_date
from app.schemas.models import SortDirection, TransactionQuery
from app.services.view_engine import (
    FilterCriteria,
    build_projection,
    filter_transactions,
    paginate,
    search_transactions,
    sort_transactions,
)

from conftest import make_transaction


def ids(transactions) -> list[str]:
    return [t.id for t in transactions]


class TestSortTransactions:
    """Tests for the stable merge sort."""

    def test_date_ascending_keeps_tie_order(self, scenario_transactions):
        result = sort_transactions(scenario_transactions, "date", "asc")
        assert ids(result) == ["2", "1", "3"]

    def test_amount_descending(self, scenario_transactions):
        result = sort_transactions(scenario_transactions, "amount", SortDirection.DESC)
        assert ids(result) == ["2", "1", "3"]

    def test_date_descending_keeps_tie_order(self, scenario_transactions):
        result = sort_transactions(scenario_transactions, "date", "desc")
        assert ids(result) == ["1", "3", "2"]

    def test_empty_input(self):
        assert sort_transactions([], "date", "asc") == []

    def test_single_element(self, scenario_transactions):
        result = sort_transactions(scenario_transactions[:1], "amount", "desc")
        assert result == scenario_transactions[:1]

    @pytest.mark.parametrize("key", ["date", "amount", "category", "description", "type"])
    @pytest.mark.parametrize("direction", ["asc", "desc"])
    def test_stable_for_every_key(self, sample_transactions, key, direction):
        result = sort_transactions(sample_transactions, key, direction)
        position = {t.id: i for i, t in enumerate(sample_transactions)}

        for earlier, later in zip(result, result[1:]):
            a = getattr(earlier, key) or ""
            b = getattr(later, key) or ""
            if a == b:
                assert position[earlier.id] < position[later.id]
            elif direction == "asc":
                assert a < b
            else:
                assert a > b

    def test_idempotent(self, sample_transactions):
        once = sort_transactions(sample_transactions, "category", "asc")
        twice = sort_transactions(once, "category", "asc")
        assert ids(once) == ids(twice)

    def test_permutation_of_input(self, sample_transactions):
        result = sort_transactions(sample_transactions, "amount", "asc")
        assert sorted(ids(result)) == sorted(ids(sample_transactions))

    def test_does_not_mutate_input(self, sample_transactions):
        before = ids(sample_transactions)
        sort_transactions(sample_transactions, "amount", "desc")
        assert ids(sample_transactions) == before

    def test_missing_description_orders_first_ascending(self, sample_transactions):
        result = sort_transactions(sample_transactions, "description", "asc")
        assert result[0].id == "t05"

    def test_invalid_key(self, sample_transactions):
        with pytest.raises(InvalidSortKeyError) as excinfo:
            sort_transactions(sample_transactions, "id", "asc")
        assert isinstance(excinfo.value, InvalidArgumentError)
        assert excinfo.value.key == "id"

    def test_invalid_direction(self, sample_transactions):
        with pytest.raises(InvalidArgumentError):
            sort_transactions(sample_transactions, "date", "sideways")


class TestSearchTransactions:
    """Tests for free-text multi-field search."""

    @pytest.mark.parametrize("term", ["", "   ", None])
    def test_blank_term_is_identity(self, sample_transactions, term):
        assert search_transactions(sample_transactions, term) == sample_transactions

    def test_scenario_category_prefix(self, scenario_transactions):
        result = search_transactions(scenario_transactions, "foo")
        assert ids(result) == ["1", "3"]

    def test_case_insensitive(self, sample_transactions):
        assert set(ids(search_transactions(sample_transactions, "FOOD"))) == {"t03", "t05", "t07", "t11"}

    @pytest.mark.parametrize("term", ["sal", "o", "2024-02", "-17", "deposit", "for", "zzz", "e"])
    def test_complete_against_linear_scan(self, sample_transactions, term):
        needle = term.lower()
        expected = {
            t.id
            for t in sample_transactions
            if needle in t.category.lower()
            or needle in (t.description or "").lower()
            or needle in render_date(t.date)
        }

        result = search_transactions(sample_transactions, term)

        assert set(ids(result)) == expected
        assert len(result) == len(set(ids(result)))

    def test_matches_in_middle_of_value(self, sample_transactions):
        # "hoe" sorts far from "shoes"; containment still finds it
        assert ids(search_transactions(sample_transactions, "hoe")) == ["t09"]

    def test_date_field_searchable(self, sample_transactions):
        result = search_transactions(sample_transactions, "2024-03")
        assert ids(result) == ["t12"]

    def test_no_matches_is_empty(self, sample_transactions):
        assert search_transactions(sample_transactions, "nothing-like-this") == []


class TestFilterTransactions:
    """Tests for conjunctive filtering."""

    AS_OF = date(2024, 12, 31)

    def test_no_criteria_keeps_everything_up_to_today(self, sample_transactions):
        result = filter_transactions(sample_transactions, as_of=self.AS_OF)
        assert result == sample_transactions

    def test_text_matches_description_or_category(self, sample_transactions):
        result = filter_transactions(sample_transactions, FilterCriteria(text="SAL"), as_of=self.AS_OF)
        assert ids(result) == ["t02", "t12"]

    def test_text_does_not_match_date(self, sample_transactions):
        result = filter_transactions(sample_transactions, FilterCriteria(text="2024"), as_of=self.AS_OF)
        assert result == []

    def test_type_filter(self, sample_transactions):
        result = filter_transactions(sample_transactions, FilterCriteria(type="income"), as_of=self.AS_OF)
        assert ids(result) == ["t02", "t06", "t12"]

    @pytest.mark.parametrize("value", ["all", "All", None, ""])
    def test_type_passthrough(self, sample_transactions, value):
        result = filter_transactions(sample_transactions, FilterCriteria(type=value), as_of=self.AS_OF)
        assert len(result) == len(sample_transactions)

    def test_category_exact(self, sample_transactions):
        result = filter_transactions(sample_transactions, FilterCriteria(category="Food"), as_of=self.AS_OF)
        assert ids(result) == ["t03", "t05", "t07", "t11"]

    def test_category_is_case_sensitive(self, sample_transactions):
        result = filter_transactions(sample_transactions, FilterCriteria(category="food"), as_of=self.AS_OF)
        assert result == []

    def test_category_all_sentinel(self, sample_transactions):
        result = filter_transactions(sample_transactions, FilterCriteria(category="All"), as_of=self.AS_OF)
        assert len(result) == len(sample_transactions)

    def test_date_range_inclusive(self, sample_transactions):
        criteria = FilterCriteria(date_from="2024-01-17", date_to="2024-02-03")
        result = filter_transactions(sample_transactions, criteria, as_of=self.AS_OF)
        assert ids(result) == ["t03", "t04", "t05", "t06", "t07", "t08"]

    def test_date_bounds_accept_dates(self, sample_transactions):
        criteria = FilterCriteria(date_from=date(2024, 3, 1))
        result = filter_transactions(sample_transactions, criteria, as_of=self.AS_OF)
        assert ids(result) == ["t12"]

    def test_unset_upper_bound_defaults_to_today(self, sample_transactions):
        result = filter_transactions(sample_transactions, as_of=date(2024, 1, 16))
        assert ids(result) == ["t01", "t02", "t10"]

    def test_malformed_bounds_are_ignored(self, sample_transactions):
        criteria = FilterCriteria(date_from="not-a-date", date_to="31/12/2024")
        result = filter_transactions(sample_transactions, criteria, as_of=self.AS_OF)
        assert result == sample_transactions

    def test_conjunction(self, sample_transactions):
        criteria = FilterCriteria(
            text="o",
            type="expense",
            category="Food",
            date_from="2024-01-01",
            date_to="2024-01-31",
        )
        result = filter_transactions(sample_transactions, criteria, as_of=self.AS_OF)

        expected = [
            t
            for t in sample_transactions
            if ("o" in (t.description or "").lower() or "o" in t.category.lower())
            and t.type.value == "expense"
            and t.category == "Food"
            and date(2024, 1, 1) <= t.date <= date(2024, 1, 31)
        ]
        assert result == expected
        assert ids(result) == ["t03", "t05"]

    def test_empty_input(self):
        assert filter_transactions([], FilterCriteria(type="income")) == []


class TestPaginate:
    """Tests for pagination."""

    def test_scenario_second_page(self, scenario_transactions):
        page = paginate(scenario_transactions, page_size=2, page=2)
        assert ids(page.items) == ["3"]
        assert page.total_pages == 2
        assert page.total_count == 3

    def test_empty_input(self):
        page = paginate([], page_size=10, page=1)
        assert page.items == []
        assert page.total_pages == 0

    @pytest.mark.parametrize("page_number", [0, -1, 4, 100])
    def test_out_of_range_is_empty(self, scenario_transactions, page_number):
        page = paginate(scenario_transactions, page_size=1, page=page_number)
        assert page.items == []
        assert page.total_pages == 3

    def test_invalid_page_size(self, scenario_transactions):
        with pytest.raises(InvalidArgumentError):
            paginate(scenario_transactions, page_size=0, page=1)

    @pytest.mark.parametrize("page_size", [1, 5, 7, 12, 50])
    def test_pages_cover_sequence_once(self, sample_transactions, page_size):
        first = paginate(sample_transactions, page_size, 1)
        collected = []
        for number in range(1, first.total_pages + 1):
            collected.extend(paginate(sample_transactions, page_size, number).items)
        assert collected == sample_transactions


class TestBuildProjection:
    """Tests for the composed projection."""

    def test_filter_search_sort_paginate(self, sample_transactions):
        query = TransactionQuery(
            search="food",
            type="expense",
            sort_key="amount",
            sort_direction="desc",
            page=1,
            page_size=3,
        )
        page = build_projection(sample_transactions, query, as_of=date(2024, 12, 31))

        assert ids(page.items) == ["t11", "t05", "t03"]
        assert page.total_count == 4
        assert page.total_pages == 2

    def test_default_query_is_newest_first(self, scenario_transactions):
        page = build_projection(scenario_transactions, TransactionQuery(), as_of=date(2024, 12, 31))
        assert ids(page.items) == ["1", "3", "2"]

    def test_invalid_sort_key_propagates(self, scenario_transactions):
        with pytest.raises(InvalidSortKeyError):
            build_projection(scenario_transactions, TransactionQuery(sort_key="color"))

    def test_no_results(self, sample_transactions):
        page = build_projection(sample_transactions, TransactionQuery(search="xyz"), as_of=date(2024, 12, 31))
        assert page.items == []
        assert page.total_count == 0
        assert page.total_pages == 0

    def test_transactions_are_immutable(self):
        transaction = make_transaction("x", "2024-01-01", 1)
        with pytest.raises(PydanticValidationError):
            transaction.amount = 2
