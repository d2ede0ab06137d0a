"""Date parsing utilities."""

import calendar
from datetime import date, timedelta
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta


def parse_date(date_str: str, dayfirst: bool = False) -> date:
    """Parse a date string into a date object.

    Supports:
    - Absolute dates: "2024-01-15", "15/01/2024" (with dayfirst), "Jan 15 2024"
    - Relative dates: "today", "yesterday", "this month", "last month"

    Args:
        date_str: Date string
        dayfirst: Read ambiguous numeric dates as day/month/year, the way
            most Latin American banks print them

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    text = date_str.strip().lower()
    if not text:
        raise ValueError("Empty date string")
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "this month": today.replace(day=1),
        "last month": (today - relativedelta(months=1)).replace(day=1),
    }
    if text in relative_dates:
        return relative_dates[text]

    try:
        return date_parser.parse(text, dayfirst=dayfirst).date()
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def month_range(month_str: str) -> tuple[date, date]:
    """Return the first and last day of a month given as "YYYY-MM".

    Raises:
        ValueError: If the month string is malformed
    """
    try:
        year_text, month_text = month_str.strip().split("-")
        year, month = int(year_text), int(month_text)
        last_day = calendar.monthrange(year, month)[1]
    except (ValueError, calendar.IllegalMonthError) as e:
        raise ValueError(f"Invalid month '{month_str}', expected YYYY-MM") from e
    return date(year, month, 1), date(year, month, last_day)
