"""Date and accounting period parsing utilities."""

import re
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{1,2})$")


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports:
    - Absolute dates: "2025-01-15", "15/01/2025", "January 15, 2025", etc.
    - Relative dates: "today", "yesterday", "tomorrow"
    - Month anchors: "this month", "last month", "this year", "last year"
      (first day of the period)

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
        "this year": today.replace(month=1, day=1),
        "last year": today.replace(month=1, day=1) - relativedelta(years=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        # Day-first matches how the finance office writes dates (15/01/2025)
        dt = date_parser.parse(date_str, dayfirst=not date_str[:4].isdigit())
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_period(period_str: str) -> str:
    """Normalize an accounting period to 'YYYY-MM'.

    Accepts "2025-03", "2025-3", "this month", "last month" or any date
    parse_date understands (the period containing that date).

    Raises:
        ValueError: If the string is not a period
    """
    text = period_str.strip().lower()
    match = _PERIOD_RE.match(text)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month in period '{period_str}'")
        return f"{year:04d}-{month:02d}"
    return period_of(parse_date(text))


def period_of(day: date) -> str:
    """Return the 'YYYY-MM' period containing a date."""
    return f"{day.year:04d}-{day.month:02d}"


def period_bounds(period: str) -> tuple[date, date]:
    """Return the first and last day of a 'YYYY-MM' period."""
    normalized = parse_period(period)
    year, month = (int(part) for part in normalized.split("-"))
    start_date = date(year, month, 1)
    end_date = start_date + relativedelta(months=1) - timedelta(days=1)
    return (start_date, end_date)


def year_bounds(year: int) -> tuple[date, date]:
    """Return January 1 and December 31 of a year."""
    return (date(year, 1, 1), date(year, 12, 31))


def shift_month(year: int, month: int, offset: int) -> tuple[int, int]:
    """Move (year, month) by a number of months."""
    shifted = date(year, month, 1) + relativedelta(months=offset)
    return (shifted.year, shifted.month)
