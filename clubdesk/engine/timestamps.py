"""
Timestamp normalization

Stored values arrive as ISO strings, dates, datetimes, epoch numbers or
store-native `{"seconds": ..., "nanos": ...}` mappings. They are turned into
one tz-aware UTC datetime at the store boundary; the engine only compares
those.
"""
from datetime import date, datetime, time, timezone
from typing import Any, Optional

from .errors import ValidationError


def to_instant(value: Any) -> Optional[datetime]:
    """
    Normalize a stored timestamp to an aware UTC datetime

    Naive values are treated as UTC. Empty values give None.

    Raises:
        ValidationError: unparseable value
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if isinstance(value, bool):
        raise ValidationError(f"Invalid timestamp: {value!r}")

    if isinstance(value, (int, float)):
        # milliseconds if clearly too large for seconds
        seconds = value / 1000 if value > 10_000_000_000 else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)

    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            raise ValidationError(f"Invalid timestamp: {value!r}")
        nanos = value.get("nanos", value.get("_nanoseconds", 0)) or 0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {value!r}")
        return to_instant(parsed)

    raise ValidationError(f"Invalid timestamp: {value!r}")


def to_date(value: Any) -> Optional[date]:
    """Normalize a stored calendar date (birth dates)"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    instant = to_instant(value)
    return instant.date() if instant else None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_key(instant: datetime) -> str:
    """YYYY-MM"""
    return f"{instant.year}-{instant.month:02d}"


def parse_month(month: str) -> tuple:
    """
    Parse "YYYY-MM" into (start, end) instants, end exclusive

    Raises:
        ValidationError: malformed month
    """
    try:
        year_str, month_str = month.split("-")
        year, mon = int(year_str), int(month_str)
        if len(year_str) != 4 or not 1 <= mon <= 12:
            raise ValueError(month)
    except (ValueError, AttributeError):
        raise ValidationError("month required in format YYYY-MM")

    start = datetime(year, mon, 1, tzinfo=timezone.utc)
    if mon == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, mon + 1, 1, tzinfo=timezone.utc)
    return start, end


def year_range(year: int) -> tuple:
    """(Jan 1 of year, Jan 1 of next year)"""
    return (
        datetime(year, 1, 1, tzinfo=timezone.utc),
        datetime(year + 1, 1, 1, tzinfo=timezone.utc),
    )
