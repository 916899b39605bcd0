"""Date normalization and interval helpers.

Every date the engine compares goes through ``parse_date`` first, so a
timestamp such as ``2024-03-01T23:30:00-05:00`` and the plain day
``2024-03-02`` land on the same day when the configured timezone is UTC.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from consult_billing.models import InvalidDateError

DateLike = Union[date, datetime, str]

START_OF_DAY = time(0, 0, 0, 0)
END_OF_DAY = time(23, 59, 59, 999000)

PRESET_RANGES = (
    "today", "week", "month", "quarter", "year",
    "last_year", "last3", "last6", "last12",
)


def _zone(tz: str | tzinfo | None) -> tzinfo | None:
    if tz is None or isinstance(tz, tzinfo):
        return tz
    if tz.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidDateError(f"Unknown timezone {tz!r}") from e


def parse_date(value: DateLike, tz: str | tzinfo | None = None) -> date:
    """Normalize a date, datetime or ISO-8601 string to a calendar day.

    Aware datetimes are converted to ``tz`` before the day is taken; with no
    ``tz`` their own wall-clock day is used.
    """
    if isinstance(value, datetime):
        zone = _zone(tz)
        if zone is not None and value.tzinfo is not None:
            value = value.astimezone(zone)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise InvalidDateError(f"Expected a date or ISO-8601 string, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise InvalidDateError("Empty date string")
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise InvalidDateError(f"Unparseable date {value!r}") from e
    return parse_date(parsed, tz)


def to_day_boundary(value: DateLike, edge: str = "start", tz: str | tzinfo | None = None) -> datetime:
    """Return 00:00:00.000 (``start``) or 23:59:59.999 (``end``) of the day."""
    if edge not in ("start", "end"):
        raise ValueError(f"edge must be 'start' or 'end', got {edge!r}")
    day = parse_date(value, tz)
    return datetime.combine(day, START_OF_DAY if edge == "start" else END_OF_DAY)


def ranges_overlap(
    a_start: DateLike,
    a_end: DateLike,
    b_start: DateLike,
    b_end: DateLike,
    tz: str | tzinfo | None = None,
) -> bool:
    """True iff the closed day intervals [a_start, a_end] and [b_start, b_end] intersect."""
    a_lo = to_day_boundary(a_start, "start", tz)
    a_hi = to_day_boundary(a_end, "end", tz)
    b_lo = to_day_boundary(b_start, "start", tz)
    b_hi = to_day_boundary(b_end, "end", tz)
    return a_lo <= b_hi and a_hi >= b_lo


def _month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _months_back(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


def preset_range(name: str, as_of: date) -> tuple[date, date]:
    """Resolve a named filter range relative to ``as_of``."""
    if name == "today":
        return as_of, as_of
    if name == "week":
        monday = as_of - timedelta(days=as_of.weekday())
        return monday, monday + timedelta(days=6)
    if name == "month":
        return as_of.replace(day=1), _month_end(as_of.year, as_of.month)
    if name == "quarter":
        first_month = 3 * ((as_of.month - 1) // 3) + 1
        return date(as_of.year, first_month, 1), _month_end(as_of.year, first_month + 2)
    if name == "year":
        return date(as_of.year, 1, 1), date(as_of.year, 12, 31)
    if name == "last_year":
        return date(as_of.year - 1, 1, 1), date(as_of.year - 1, 12, 31)
    if name in ("last3", "last6", "last12"):
        months = int(name[4:])
        return _months_back(as_of, months), _month_end(as_of.year, as_of.month)
    raise ValueError(f"Unknown date range {name!r}; expected one of {', '.join(PRESET_RANGES)}")


def today(tz: str | tzinfo | None = None) -> date:
    """The current day in ``tz``. Only entry points call this; engine functions take ``as_of``."""
    return datetime.now(_zone(tz)).date()
