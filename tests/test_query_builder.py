from datetime import datetime

import pytest
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from services.errors import InvalidExpenseError
from services.query_builder import build_expense_query, clamp_limit, clamp_page


def test_defaults_scope_to_owner_and_sort_newest_first() -> None:
    owner = ObjectId()
    query = build_expense_query(owner)

    assert query.filter == {"user": owner}
    assert query.sort == [("date", DESCENDING)]
    assert (query.page, query.limit, query.skip) == (1, 10, 0)


def test_filters_are_added_only_when_present() -> None:
    owner = ObjectId()
    query = build_expense_query(owner, category="Food", payment_method="", start_date=None)

    assert query.filter == {"user": owner, "category": "Food"}


def test_date_range_uses_inclusive_bounds() -> None:
    query = build_expense_query(ObjectId(), start_date="2024-01-01", end_date="2024-01-31T23:59:59")

    assert query.filter["date"] == {
        "$gte": datetime(2024, 1, 1),
        "$lte": datetime(2024, 1, 31, 23, 59, 59),
    }


def test_only_end_date_sets_upper_bound() -> None:
    query = build_expense_query(ObjectId(), end_date="2024-02-01")

    assert query.filter["date"] == {"$lte": datetime(2024, 2, 1)}


def test_unparseable_date_is_rejected() -> None:
    with pytest.raises(InvalidExpenseError):
        build_expense_query(ObjectId(), start_date="next tuesday")


def test_sort_order() -> None:
    assert build_expense_query(ObjectId(), sort_by="amount", sort_order="asc").sort == [("amount", ASCENDING)]
    assert build_expense_query(ObjectId(), sort_by="amount", sort_order="desc").sort == [("amount", DESCENDING)]
    assert build_expense_query(ObjectId(), sort_by="title", sort_order="sideways").sort == [("title", DESCENDING)]


def test_unknown_sort_field_is_rejected() -> None:
    with pytest.raises(InvalidExpenseError):
        build_expense_query(ObjectId(), sort_by="user")


@pytest.mark.parametrize("page, expected", [(None, 1), (-3, 1), (0, 1), (1, 1), (7, 7)])
def test_clamp_page(page, expected) -> None:
    assert clamp_page(page) == expected


@pytest.mark.parametrize("limit, expected", [(None, 10), (0, 1), (-5, 1), (25, 25), (100, 100), (101, 100), (5000, 100)])
def test_clamp_limit(limit, expected) -> None:
    assert clamp_limit(limit) == expected


def test_skip_and_total_pages() -> None:
    query = build_expense_query(ObjectId(), page=3, limit=4)

    assert query.skip == 8
    assert query.total_pages(0) == 0
    assert query.total_pages(8) == 2
    assert query.total_pages(9) == 3
