"""Date manipulation utilities"""

import calendar
from datetime import date, timedelta


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(from_date: date, months: int, day: int | None = None) -> date:
    """
    Move a date forward by whole calendar months.

    The target day (default: from_date's day) is clamped to the last day of
    short months, so Jan 31 + 1 month -> Feb 28/29, never March.
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    target_day = from_date.day if day is None else day
    return date(year, month, min(target_day, last_day_of_month(year, month)))


def add_days(from_date: date, days: int) -> date:
    return from_date + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Signed whole days from start to end"""
    return (end - start).days


def tax_year_bounds(start_year: int, start: tuple[int, int]) -> tuple[date, date]:
    """UK-style tax year: (start_year, month, day) to the day before next year's start"""
    month, day = start
    first = date(start_year, month, day)
    last = date(start_year + 1, month, day) - timedelta(days=1)
    return first, last
