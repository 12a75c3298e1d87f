"""Date parsing helpers shared by listing filters and CSV import."""
from datetime import datetime, timezone

# Tried in order after ISO 8601
FALLBACK_FORMATS = ("%Y/%m/%d", "%m/%d/%Y", "%d.%m.%Y")


def parse_datetime(value: str) -> datetime:
    """
    Parses an ISO 8601 date or datetime, or one of FALLBACK_FORMATS.
    Raises ValueError when nothing matches.
    """
    value = value.strip()
    if not value:
        raise ValueError("Empty date value")
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        pass
    for fmt in FALLBACK_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized date format: {value!r}")


def to_bson_datetime(value: datetime) -> datetime:
    """
    Normalizes to what MongoDB stores: naive UTC with millisecond precision.
    Naive input is taken to already be UTC.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.replace(microsecond=value.microsecond // 1000 * 1000)
