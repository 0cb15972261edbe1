"""Calendar-day helpers.

Everything in the engine compares by calendar day.  A ``datetime`` is reduced
to its own ``date()``: the wall-clock day it carries, with no time zone
conversion.  Converting first would move late-evening timestamps to the
neighbouring day depending on the server's zone.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterator

ONE_DAY = timedelta(days=1)


def to_calendar_date(value: date | datetime | str) -> date:
    """Normalize a date-like value to a plain ``date``.

    Args:
        value: A ``date``, a ``datetime`` (time and tzinfo are dropped), or an
               ISO ``YYYY-MM-DD`` string.  Longer ISO timestamps are cut to
               their date part.

    Returns:
        The calendar day.

    Raises:
        ValueError: If a string is not a valid ISO date.
        TypeError:  For any other type.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise TypeError(f"Expected a date, datetime or ISO string, got {type(value).__name__}")


def format_date(value: date | datetime) -> str:
    """ISO ``YYYY-MM-DD`` form used in persisted plugin data."""
    return to_calendar_date(value).isoformat()


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=days)


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every day in the closed interval ``[start, end]``.

    An inverted interval (``start > end``) yields nothing.
    """
    current = start
    while current <= end:
        yield current
        current += ONE_DAY


def first_of_month(day: date | datetime) -> date:
    return to_calendar_date(day).replace(day=1)


def shift_month(month: date | datetime, delta: int) -> date:
    """Return the first day of the month ``delta`` months from ``month``.

    Used for previous/next navigation; the day of month is not carried over,
    so Jan 31 + 1 month is Feb 1 rather than an overflow into March.
    """
    start = first_of_month(month)
    index = start.year * 12 + (start.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)
