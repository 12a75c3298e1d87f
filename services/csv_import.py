"""CSV parsing for bulk expense import."""
import csv
import json
import logging
import math
from datetime import datetime, timezone
from io import StringIO
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from services.errors import InvalidExpenseError
from utils.dates import parse_datetime, to_bson_datetime

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled"
DEFAULT_CATEGORY = "Miscellaneous"
DEFAULT_PAYMENT_METHOD = "cash"


def _cell(row: Dict[str, Any], key: str) -> str:
    value = row.get(key)
    return value.strip() if isinstance(value, str) else ""


def decode_csv(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InvalidExpenseError("Could not read file. Ensure UTF-8 encoding.")


def row_to_document(row: Dict[str, Any], owner_id: ObjectId, now: datetime) -> Dict[str, Any]:
    """
    Converts one CSV row into an expense document.

    Missing title, category and paymentMethod fall back to defaults, a missing or
    unparseable date falls back to `now`. Raises ValueError when amount is
    absent, non-numeric or negative.
    """
    amount_raw = _cell(row, "amount")
    try:
        amount = float(amount_raw)
    except ValueError:
        raise ValueError(f"Invalid amount value in row: {json.dumps(row)}")
    if not math.isfinite(amount) or amount < 0:
        raise ValueError(f"Invalid amount value in row: {json.dumps(row)}")

    date_raw = _cell(row, "date")
    expense_date = now
    if date_raw:
        try:
            expense_date = parse_datetime(date_raw)
        except ValueError:
            logger.debug(f"Unparseable date {date_raw!r}, using ingestion time.")

    return {
        "title": _cell(row, "title") or DEFAULT_TITLE,
        "amount": amount,
        "category": _cell(row, "category") or DEFAULT_CATEGORY,
        "paymentMethod": (_cell(row, "paymentMethod") or DEFAULT_PAYMENT_METHOD).lower(),
        "date": to_bson_datetime(expense_date),
        "user": owner_id,
    }


def parse_expenses_csv(
    content: bytes,
    owner_id: ObjectId,
    now: Optional[datetime] = None,
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """
    Parses every row of an uploaded CSV before anything is stored.
    Returns (documents, errors); callers must not persist when errors is non-empty.
    """
    now = now or datetime.now(timezone.utc)
    reader = csv.DictReader(StringIO(decode_csv(content)))
    documents: List[Dict[str, Any]] = []
    errors: List[str] = []
    try:
        for raw in reader:
            # Last physical line of the record, so quoted newlines do not shift later rows
            line = reader.line_num
            row = {(key or "").strip(): value for key, value in raw.items()}
            try:
                documents.append(row_to_document(row, owner_id, now))
            except ValueError as exc:
                errors.append(f"Row {line}: {exc}")
    except csv.Error as exc:
        raise InvalidExpenseError(f"Error processing CSV file: {exc}")
    return documents, errors
