"""Driver earnings over completed trips."""

import calendar
from datetime import datetime, timedelta

from pydantic import BaseModel


class EarningsPeriod(BaseModel):
    total: float
    trips: int


class EarningsSummary(BaseModel):
    """Completed-trip fares for one driver, bucketed by completion time.

    Periods are inclusive of their start: today from midnight UTC, week
    from midnight seven days ago, month from midnight on the same day of
    the previous month.
    """

    driver_id: str
    all_time: EarningsPeriod
    today: EarningsPeriod
    week: EarningsPeriod
    month: EarningsPeriod


def period_starts(now: datetime) -> dict[str, datetime]:
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return {
        "today": midnight,
        "week": midnight - timedelta(days=7),
        "month": _month_before(midnight),
    }


def _month_before(value: datetime) -> datetime:
    year, month = (value.year, value.month - 1) if value.month > 1 else (value.year - 1, 12)
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
