from datetime import datetime, timezone

import pytest
from bson import ObjectId

from services.csv_import import parse_expenses_csv
from services.errors import InvalidExpenseError

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_rows_are_parsed_with_defaults() -> None:
    owner = ObjectId()
    content = (
        b"title,amount,category,paymentMethod,date\n"
        b"Lunch,12.50,Food,Credit Card,2024-03-05\n"
        b",7,,,\n"
    )
    documents, errors = parse_expenses_csv(content, owner, now=NOW)

    assert errors == []
    assert documents[0] == {
        "title": "Lunch",
        "amount": 12.5,
        "category": "Food",
        "paymentMethod": "credit card",
        "date": datetime(2024, 3, 5),
        "user": owner,
    }
    assert documents[1]["title"] == "Untitled"
    assert documents[1]["category"] == "Miscellaneous"
    assert documents[1]["paymentMethod"] == "cash"
    assert documents[1]["date"] == datetime(2024, 6, 1, 12, 0)


def test_missing_columns_and_bom_are_tolerated() -> None:
    content = "\ufeffamount\n42\n".encode("utf-8")
    documents, errors = parse_expenses_csv(content, ObjectId(), now=NOW)

    assert errors == []
    assert documents[0]["amount"] == 42.0
    assert documents[0]["title"] == "Untitled"


def test_unparseable_date_falls_back_to_ingestion_time() -> None:
    documents, errors = parse_expenses_csv(b"amount,date\n5,someday\n", ObjectId(), now=NOW)

    assert errors == []
    assert documents[0]["date"] == datetime(2024, 6, 1, 12, 0)


def test_every_bad_row_is_reported() -> None:
    content = b"title,amount\nok,1\nbad,abc\nmissing,\nnegative,-4\n"
    documents, errors = parse_expenses_csv(content, ObjectId(), now=NOW)

    assert len(documents) == 1
    assert len(errors) == 3
    assert errors[0].startswith("Row 3: Invalid amount value in row:")
    assert '"abc"' in errors[0]
    assert errors[1].startswith("Row 4:")
    assert errors[2].startswith("Row 5:")


def test_non_utf8_content_is_rejected() -> None:
    with pytest.raises(InvalidExpenseError):
        parse_expenses_csv(b"amount\n\xff\xfe\x00", ObjectId())


def test_row_numbers_follow_file_lines_across_quoted_newlines() -> None:
    content = b'title,amount\n"multi\nline",1\nbad,x\n'
    documents, errors = parse_expenses_csv(content, ObjectId(), now=NOW)

    assert documents[0]["title"] == "multi\nline"
    assert len(errors) == 1
    assert errors[0].startswith("Row 4:")
