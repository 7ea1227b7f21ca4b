"""Publication date parsing and display helpers.

Providers return dates as "2024", "2024-03" or "2024-03-15" (sometimes with
a time suffix). Everything here is tolerant: unparseable input gives ``None``
or a neutral display value, never an exception.
"""
import calendar
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

_DATE_RE = re.compile(r"^\s*(\d{4})(?:-(\d{1,2})(?:-(\d{1,2}))?)?")


@dataclass(frozen=True)
class PublishedDate:
    value: date
    precision: str  # "year", "month" or "day"


def parse_published_date(raw: Optional[str]) -> Optional[PublishedDate]:
    if not raw:
        return None
    match = _DATE_RE.match(str(raw))
    if not match:
        return None
    year_str, month_str, day_str = match.groups()
    try:
        if day_str:
            return PublishedDate(date(int(year_str), int(month_str), int(day_str)), "day")
        if month_str:
            return PublishedDate(date(int(year_str), int(month_str), 1), "month")
        return PublishedDate(date(int(year_str), 1, 1), "year")
    except ValueError:
        return None


def months_since(published: PublishedDate, today: date) -> int:
    """
    Whole months between publication and today, never negative.

    Year-only dates are measured from December of that year, so a book
    dated with the current year counts as brand new.
    """
    month = 12 if published.precision == "year" else published.value.month
    months = (today.year - published.value.year) * 12 + (today.month - month)
    return max(0, months)


def format_month_year(raw: Optional[str], today: Optional[date] = None) -> str:
    """Render a publication date as "Month Year".

    Year-only dates render as the bare year; unparseable dates fall back to
    the current year.
    """
    today = today or date.today()
    parsed = parse_published_date(raw)
    if parsed is None:
        return str(today.year)
    if parsed.precision == "year":
        return str(parsed.value.year)
    return f"{calendar.month_name[parsed.value.month]} {parsed.value.year}"


def published_sort_key(raw: Optional[str]) -> date:
    parsed = parse_published_date(raw)
    return parsed.value if parsed else date.min
