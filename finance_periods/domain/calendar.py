"""
Calendar-month fiscal period layout.

A fiscal year here is the calendar year: twelve periods, one per month,
January 1 through December 31.  Periods are contiguous with no gaps or
overlaps.
"""

import calendar
from datetime import date

PERIODS_PER_YEAR = 12


def year_bounds(year: int) -> tuple[date, date]:
    """First and last day of the fiscal year."""
    return date(year, 1, 1), date(year, 12, 31)


def month_span(year: int, period: int) -> tuple[date, date]:
    """Start and end date of a single monthly period."""
    if not 1 <= period <= PERIODS_PER_YEAR:
        raise ValueError(f"period must be between 1 and {PERIODS_PER_YEAR}, got {period}")
    last_day = calendar.monthrange(year, period)[1]
    return date(year, period, 1), date(year, period, last_day)


def monthly_spans(year: int) -> list[tuple[int, date, date]]:
    """(period, start_date, end_date) for all twelve months of ``year``."""
    return [
        (period, *month_span(year, period))
        for period in range(1, PERIODS_PER_YEAR + 1)
    ]


def period_name(year: int, period: int) -> str:
    """Display name of a period, e.g. ``2025-03``."""
    return f"{year:04d}-{period:02d}"
