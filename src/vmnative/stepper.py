"""
Date range partitioning.

Splits a time interval into consecutive sub-ranges of a named step size.
"""

from __future__ import annotations

from datetime import MAXYEAR, datetime, timedelta
from enum import Enum

DateRange = tuple[datetime, datetime]


class Step(str, Enum):
    """Named step sizes used to partition time intervals."""

    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


_FIXED_STEPS = {
    Step.MINUTE: timedelta(minutes=1),
    Step.HOUR: timedelta(hours=1),
    Step.DAY: timedelta(days=1),
    Step.WEEK: timedelta(weeks=1),
}


def _next_month(t: datetime) -> datetime:
    if t.month == 12:
        return t.replace(year=t.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return t.replace(month=t.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)


def _next_year(t: datetime) -> datetime:
    return t.replace(year=t.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)


def _next_boundary(t: datetime, step: Step, end: datetime) -> datetime:
    # Boundaries past datetime.max are clipped to the interval end
    if step in _FIXED_STEPS:
        try:
            return t + _FIXED_STEPS[step]
        except OverflowError:
            return end
    if t.year == MAXYEAR and (step == Step.YEAR or t.month == 12):
        return end
    if step == Step.MONTH:
        return _next_month(t)
    return _next_year(t)


def split_date_range(
    start: datetime,
    end: datetime,
    step: Step | str,
    reverse: bool = False,
) -> list[DateRange]:
    """
    Split [start, end] into consecutive ranges of the given step.

    Fixed steps (minute to week) advance by a constant delta from ``start``.
    Month and year steps advance to the first instant of the next calendar
    month or year, so the first range may be shorter than a full step.
    The last range is clipped at ``end``.

    Args:
        start: Interval start
        end: Interval end
        step: Step size name
        reverse: Return ranges newest first

    Returns:
        List of (start, end) tuples

    Raises:
        ValueError: If start is after end or the step is unknown
    """
    if start > end:
        raise ValueError(
            f"start time {start.isoformat()} should come before end time {end.isoformat()}"
        )

    try:
        resolved = Step(step)
    except ValueError:
        valid = ", ".join(f"'{s.value}'" for s in Step)
        raise ValueError(f"failed to parse step value, valid values are: {valid}. provided: '{step}'") from None

    ranges: list[DateRange] = []
    current = start
    while current < end:
        upper = min(_next_boundary(current, resolved, end), end)
        ranges.append((current, upper))
        current = upper

    if reverse:
        ranges.reverse()
    return ranges
