"""Calendar date helpers shared by generation, storage and the API."""

from __future__ import annotations

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Iterable

from goalblocks.models.constants import DATE_FORMAT
from goalblocks.recurrence.errors import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_str(value: str, *, field: str = "date") -> date:
    """Parse a strict YYYY-MM-DD string (rejects '2024-1-5', timestamps, '2024-02-30')."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD", field=field)
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid calendar date: {value}", field=field) from None


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)


def daterange(start: date, end_inclusive: date) -> Iterable[date]:
    cur = start
    while cur <= end_inclusive:
        yield cur
        cur = cur + timedelta(days=1)


def sunday_weekday(d: date) -> int:
    # Python weekday: Monday=0 ... Sunday=6; clients use Sunday=0 ... Saturday=6
    return (d.weekday() + 1) % 7


def week_start_sunday(d: date) -> date:
    return d - timedelta(days=sunday_weekday(d))


def clamp_day(year: int, month: int, day: int) -> date:
    """Date for `day` in (year, month), clamped to that month's last day."""
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day, last))


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + months
    return idx // 12, idx % 12 + 1
