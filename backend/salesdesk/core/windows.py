# salesdesk/core/windows.py
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from salesdesk.core.clock import to_local, utcnow


class Period(str, enum.Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    THIS_YEAR = "this_year"
    LAST_YEAR = "last_year"
    LAST_7_DAYS = "7d"
    LAST_30_DAYS = "30d"
    ALL = "all"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DateWindow:
    """
    Inclusive range of whole local days. A missing bound is open.
    """

    first_day: Optional[date] = None
    last_day: Optional[date] = None

    def contains(self, moment: datetime) -> bool:
        day = to_local(moment).date()
        if self.first_day is not None and day < self.first_day:
            return False
        if self.last_day is not None and day > self.last_day:
            return False
        return True


def _month_start(d: date) -> date:
    return d.replace(day=1)


def _month_end(d: date) -> date:
    next_month = (d.replace(day=28) + timedelta(days=4)).replace(day=1)
    return next_month - timedelta(days=1)


def resolve_window(
    period: Period,
    *,
    now: Optional[datetime] = None,
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
) -> DateWindow:
    """
    Day range for a reporting period, anchored on the local date of `now`.
    Weeks start on Monday. `7d` / `30d` end today and include today.
    """
    today = to_local(now or utcnow()).date()

    if period == Period.TODAY:
        return DateWindow(today, today)

    if period == Period.YESTERDAY:
        y = today - timedelta(days=1)
        return DateWindow(y, y)

    if period == Period.THIS_WEEK:
        monday = today - timedelta(days=today.weekday())
        return DateWindow(monday, monday + timedelta(days=6))

    if period == Period.LAST_WEEK:
        monday = today - timedelta(days=today.weekday() + 7)
        return DateWindow(monday, monday + timedelta(days=6))

    if period == Period.THIS_MONTH:
        return DateWindow(_month_start(today), _month_end(today))

    if period == Period.LAST_MONTH:
        prev = _month_start(today) - timedelta(days=1)
        return DateWindow(_month_start(prev), prev)

    if period == Period.THIS_YEAR:
        return DateWindow(date(today.year, 1, 1), date(today.year, 12, 31))

    if period == Period.LAST_YEAR:
        return DateWindow(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))

    if period == Period.LAST_7_DAYS:
        return DateWindow(today - timedelta(days=6), today)

    if period == Period.LAST_30_DAYS:
        return DateWindow(today - timedelta(days=29), today)

    if period == Period.CUSTOM:
        # open start, end defaults to today
        return DateWindow(custom_start, custom_end or today)

    return DateWindow()
