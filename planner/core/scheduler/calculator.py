# planner/core/scheduler/calculator.py
from __future__ import annotations
import calendar
from datetime import MAXYEAR, datetime, timedelta, timezone
from typing import Optional
from planner.core.defaults import MAX_MONTH_SEARCH, MAX_YEAR_SEARCH, WEEK
from planner.core.models.repetition import (
    ConstantGapRepetition,
    CustomRepetition,
    MonthlyRepetition,
    OnceRepetition,
    RepetitionRule,
    WeeklyRepetition,
    YearlyRepetition,
    invalid_gap_error,
)
from planner.core.scheduler.custom import RepetitionHandler


def advance_due_date(
    rule: RepetitionRule,
    now: datetime,
    due_date: datetime,
    handler: RepetitionHandler,
) -> Optional[datetime]:
    """
    Calculate the due date that follows `due_date` for a repetition rule.

    Only the date is computed; repetition counts are left untouched.

    Args:
        rule: Repetition rule of the task
        now: Reference instant (timezone-aware)
        due_date: Current due date of the task (timezone-aware)
        handler: Handler consulted for CustomRepetition

    Returns:
        The next due date, or None when the task leaves its lane

    Raises:
        OverflowError: If the next due date is beyond datetime.max
        ConfigurationError: If a constant gap is not positive
    """
    if now.tzinfo is None:
        raise ValueError('now must be timezone-aware')

    match rule:
        case OnceRepetition():
            return None
        case WeeklyRepetition():
            return next_weekly(now, due_date)
        case MonthlyRepetition():
            return next_monthly(now, due_date)
        case YearlyRepetition():
            return next_yearly(now, due_date)
        case ConstantGapRepetition():
            return next_constant_gap(now, due_date, rule.gap)
        case CustomRepetition():
            next_date = handler.next_date(now, due_date)
            if next_date is None:
                return None
            return _pin_offset(next_date)


def next_constant_gap(now: datetime, due_date: datetime, gap: timedelta) -> datetime:
    """
    Smallest `due_date + k * gap` strictly after `now` (k >= 0).

    Computed in one step: now + (gap - ((now - due_date) mod gap)).
    """
    if gap <= timedelta(0):
        raise invalid_gap_error(gap)
    if due_date > now:
        return due_date

    next_due = now + (gap - (now - due_date) % gap)
    return next_due.astimezone(due_date.tzinfo)


def next_weekly(now: datetime, due_date: datetime) -> datetime:
    """Next occurrence on the same weekday and time of day, strictly after `now`."""
    return next_constant_gap(now, due_date, WEEK)


def next_monthly(now: datetime, due_date: datetime) -> datetime:
    """
    Next occurrence on the same day of month and time of day, strictly after `now`.

    Months without that day are skipped (the 31st never lands on the 30th).
    """
    if due_date > now:
        return due_date

    local_now = now.astimezone(due_date.tzinfo)
    for month_offset in range(0, MAX_MONTH_SEARCH):
        year, month = _add_months(local_now.year, local_now.month, month_offset)
        if year > MAXYEAR:
            raise OverflowError(f'monthly rollover of {due_date.isoformat()} passes year {MAXYEAR}')
        if due_date.day > calendar.monthrange(year, month)[1]:
            continue

        candidate = due_date.replace(year=year, month=month)
        if candidate > now:
            return candidate

    raise RuntimeError(
        f'Could not calculate next monthly date within {MAX_MONTH_SEARCH} months'
    )


def next_yearly(now: datetime, due_date: datetime) -> datetime:
    """
    Next occurrence on the same month, day and time of day, strictly after `now`.

    February 29 only lands on leap years.
    """
    if due_date > now:
        return due_date

    local_now = now.astimezone(due_date.tzinfo)
    leap_day = due_date.month == 2 and due_date.day == 29
    for year_offset in range(0, MAX_YEAR_SEARCH):
        year = local_now.year + year_offset
        if year > MAXYEAR:
            raise OverflowError(f'yearly rollover of {due_date.isoformat()} passes year {MAXYEAR}')
        if leap_day and not calendar.isleap(year):
            continue

        candidate = due_date.replace(year=year)
        if candidate > now:
            return candidate

    raise RuntimeError(
        f'Could not calculate next yearly date within {MAX_YEAR_SEARCH} years'
    )


def _add_months(year: int, month: int, month_offset: int) -> tuple[int, int]:
    base = (year * 12) + (month - 1) + month_offset
    return (base // 12, (base % 12) + 1)


def _pin_offset(value: datetime) -> datetime:
    offset = value.utcoffset()
    if offset is None:
        raise ValueError('repetition handler returned a naive datetime')
    return value.astimezone(timezone(offset))


def is_due(due_date: datetime, check_time: datetime) -> bool:
    """
    Determine if a task is due at the check time.

    Args:
        due_date: Task due date (timezone-aware)
        check_time: Current time to check against (timezone-aware)

    Returns:
        True if the task should fire (or be caught up) now
    """
    return due_date <= check_time
