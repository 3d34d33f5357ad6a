"""
kpi/periods.py

Calendar arithmetic for bucketing and cohort offsets.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from dateutil.relativedelta import relativedelta


def month_start(moment: datetime) -> datetime:
    """First instant of the calendar month containing *moment* (tz preserved)."""
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def add_months(moment: datetime, months: int) -> datetime:
    return moment + relativedelta(months=months)


def day_start(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def week_start(moment: datetime) -> datetime:
    """
    Start of the Sunday-based week containing *moment*.

    ``weekday()`` is Monday=0, so Sunday is 6 and maps to offset 0.
    """
    offset = (moment.weekday() + 1) % 7
    return day_start(moment) - timedelta(days=offset)


def whole_months_between(start: datetime, end: datetime) -> int:
    """
    Number of complete calendar months from *start* to *end*, never negative.
    """
    if end <= start:
        return 0
    delta = relativedelta(end, start)
    return delta.years * 12 + delta.months


def days_between(start: datetime, end: datetime) -> int:
    """Whole days elapsed from *start* to *end*, truncated toward zero."""
    return int((end - start).total_seconds() / 86400)


def month_key(moment: datetime) -> str:
    return moment.strftime("%Y-%m")


def month_label(moment: datetime) -> str:
    return moment.strftime("%b %Y")
