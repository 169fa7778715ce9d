"""Utility functions for advancing payment schedule run dates."""

import calendar as cal
from datetime import date, timedelta

from shulpay.models.payment_schedule import ScheduleFrequency


def next_run_date(current: date, frequency: str, anchor_day: int | None = None) -> date:
    """Advance a run date by one period of ``frequency``.

    Monthly and annual steps clamp to the last day of the target month.
    ``anchor_day`` (usually the start date's day) lets a schedule that was
    clamped in a short month return to its original day afterwards.
    """
    if frequency == ScheduleFrequency.WEEKLY.value:
        return current + timedelta(weeks=1)
    elif frequency == ScheduleFrequency.MONTHLY.value:
        return _add_months(current, 1, anchor_day)
    elif frequency == ScheduleFrequency.ANNUALLY.value:
        return _add_months(current, 12, anchor_day)
    raise ValueError(f"Unknown frequency: {frequency}")


def _add_months(d: date, months: int, anchor_day: int | None = None) -> date:
    """Add months to a date, clamping to last day of month."""
    month = d.month - 1 + months
    year = d.year + month // 12
    month = month % 12 + 1
    max_day = cal.monthrange(year, month)[1]
    day = min(anchor_day or d.day, max_day)
    return d.replace(year=year, month=month, day=day)
