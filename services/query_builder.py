"""Translates listing filters into a MongoDB filter, sort spec and pagination window."""
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING

from services.errors import InvalidExpenseError
from utils.dates import parse_datetime, to_bson_datetime

SORTABLE_FIELDS = ("title", "amount", "category", "paymentMethod", "date")
DEFAULT_SORT_FIELD = "date"
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class ExpenseQuery:
    filter: Dict[str, Any]
    sort: List[Tuple[str, int]]
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    def total_pages(self, total: int) -> int:
        return math.ceil(total / self.limit)


def clamp_page(page: Optional[int]) -> int:
    if page is None:
        return DEFAULT_PAGE
    return max(1, page)


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    return min(max(1, limit), MAX_LIMIT)


def _parse_bound(name: str, value: str):
    try:
        return to_bson_datetime(parse_datetime(value))
    except ValueError:
        raise InvalidExpenseError(f"Invalid {name} value: {value}")


def build_expense_query(
    owner_id: ObjectId,
    category: Optional[str] = None,
    payment_method: Optional[str] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = "desc",
    page: Optional[int] = DEFAULT_PAGE,
    limit: Optional[int] = DEFAULT_LIMIT,
) -> ExpenseQuery:
    """
    Builds the owner-scoped query for the expense listing.

    Empty filter values are left out of the filter entirely. Both date bounds
    are inclusive. Without sort_by the listing is newest first; sort_order
    "asc" sorts ascending and anything else descending.
    """
    query_filter: Dict[str, Any] = {"user": owner_id}
    if category:
        query_filter["category"] = category
    if payment_method:
        query_filter["paymentMethod"] = payment_method

    if start_date or end_date:
        date_range = {}
        if start_date:
            date_range["$gte"] = _parse_bound("startDate", start_date)
        if end_date:
            date_range["$lte"] = _parse_bound("endDate", end_date)
        query_filter["date"] = date_range

    if sort_by:
        if sort_by not in SORTABLE_FIELDS:
            raise InvalidExpenseError(
                f"Invalid sortBy field. Allowed fields: {', '.join(SORTABLE_FIELDS)}"
            )
        sort = [(sort_by, ASCENDING if sort_order == "asc" else DESCENDING)]
    else:
        sort = [(DEFAULT_SORT_FIELD, DESCENDING)]

    return ExpenseQuery(
        filter=query_filter,
        sort=sort,
        page=clamp_page(page),
        limit=clamp_limit(limit),
    )
