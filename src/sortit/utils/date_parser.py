"""Date parsing utilities."""

import re
from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

PERIODS = ("this-week", "this-month", "this-year", "last-week", "last-month", "last-year")

_DAYS_AGO = re.compile(r"^(\d+)\s+days?\s+ago$")


def _period_start(unit: str, today: date, offset: int) -> date:
    """First day of the week/month/year ``offset`` units away from today's."""
    if unit == "week":
        return today - timedelta(days=today.weekday()) + timedelta(weeks=offset)
    if unit == "month":
        return today.replace(day=1) + relativedelta(months=offset)
    if unit == "year":
        return today.replace(month=1, day=1) + relativedelta(years=offset)
    raise ValueError(f"Unknown period unit '{unit}'")


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a date string into a date object.

    Accepts absolute dates in any format dateutil understands ("2024-01-15",
    "Jan 15 2024") and relative ones: "today", "yesterday", "N days ago",
    and "this/last/next week|month|year" (the first day of that period).

    Args:
        date_str: Date string
        today: Reference date for relative expressions (defaults to today)

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    today = today or date.today()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)

    days_ago = _DAYS_AGO.match(text)
    if days_ago:
        return today - timedelta(days=int(days_ago.group(1)))

    words = text.split()
    if len(words) == 2 and words[0] in ("this", "last", "next"):
        offset = {"this": 0, "last": -1, "next": 1}[words[0]]
        return _period_start(words[1], today, offset)

    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}") from e


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named period.

    "this-*" periods end today; "last-*" periods cover the whole previous
    week, month or year.

    Args:
        period: One of PERIODS
        today: Reference date (defaults to today)

    Returns:
        Tuple of (start_date, end_date)

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()
    if period not in PERIODS:
        raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}")

    which, unit = period.split("-")
    if which == "this":
        return _period_start(unit, today, 0), today

    start = _period_start(unit, today, -1)
    return start, _period_start(unit, today, 0) - timedelta(days=1)
