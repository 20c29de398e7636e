"""
Calendar primitives for the recurrence engine.

All values are whole calendar days. A ``datetime`` is truncated to its date
before any comparison, so time-of-day never influences a result.

Month and year arithmetic rolls over: when the day-of-month does not exist in
the target month, the surplus days spill into the following month
(Jan 31 + 1 month -> Mar 2 in a leap year, Feb 29 + 1 year -> Mar 1).
"""
from __future__ import annotations

import calendar
import typing as t
from datetime import MAXYEAR, MINYEAR, date, datetime, timedelta

# Fixed 8-digit date format used for every date crossing the engine boundary.
DATE_FORMAT = "%Y%m%d"

DateLike = t.Union[date, datetime]


def truncate_to_day(value: DateLike) -> date:
    """Drops any time-of-day component.

    :param value: A date or datetime.
    :return: The pure calendar date.
    """
    if isinstance(value, datetime):
        return value.date()
    return value


def is_strictly_after(a: DateLike, b: DateLike) -> bool:
    """Returns True iff ``a`` falls on a later calendar day than ``b``."""
    return truncate_to_day(a) > truncate_to_day(b)


def last_day_of_month(year: int, month: int) -> int:
    """Returns the number of days in the given month, leap years included."""
    return calendar.monthrange(year, month)[1]


def add_days(value: date, days: int) -> date:
    return truncate_to_day(value) + timedelta(days=days)


def add_months(value: date, months: int) -> date:
    """Adds whole months, rolling overflowing days into the next month.

    :param value: The starting date.
    :param months: Number of months to add (may be negative).
    :return: The shifted date.
    """
    value = truncate_to_day(value)
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    if not MINYEAR <= year <= MAXYEAR:
        raise OverflowError("date value out of range")
    first = date(year, month + 1, 1)
    return first + timedelta(days=value.day - 1)


def add_years(value: date, years: int) -> date:
    return add_months(value, years * 12)


def parse_date(text: str) -> date:
    """Parses a date in the fixed ``YYYYMMDD`` format.

    :param text: Exactly eight ASCII digits.
    :return: The parsed date.
    :raises ValueError: If the text is not a valid 8-digit date.
    """
    if not isinstance(text, str) or len(text) != 8 or not (text.isascii() and text.isdigit()):
        raise ValueError(f"date must be 8 digits in YYYYMMDD format, got {text!r}")
    return datetime.strptime(text, DATE_FORMAT).date()


def format_date(value: DateLike) -> str:
    """Formats a date in the fixed ``YYYYMMDD`` format."""
    value = truncate_to_day(value)
    return f"{value.year:04d}{value.month:02d}{value.day:02d}"
