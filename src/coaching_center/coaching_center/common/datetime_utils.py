from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Union

from ..core.exceptions import ValidationError

DateLike = Union[date, datetime, str]


def to_calendar_day(value: DateLike) -> date:
    """Normalize a date, datetime or ISO string to its calendar day.

    Time of day is dropped; every ledger lookup and write goes through here so
    two calls for the same day always hit the same record.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        v = value.strip()
        try:
            return datetime.fromisoformat(v[:19] if "T" in v else v).date()
        except ValueError:
            raise ValidationError("Date must be in valid format (YYYY-MM-DD)")
    raise ValidationError("Date is required")


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of the month."""
    try:
        y, m = int(year), int(month)
    except (TypeError, ValueError):
        raise ValidationError("Year and month must be numbers")
    if m < 1 or m > 12:
        raise ValidationError("Month must be between 1 and 12")
    if y < 1900 or y > 9999:
        raise ValidationError("Year is out of range")
    last = calendar.monthrange(y, m)[1]
    return date(y, m, 1), date(y, m, last)


def month_label(year: int, month: int) -> str:
    return f"{int(year)}-{int(month):02d}"


def iso(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return value.strftime("%Y-%m-%d")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
