"""
Interval Model for Shift Planner

Half-open time ranges, day-level ranges and the calendar-grid helpers
every conflict check and calendar view is built from.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, List, Union

DateLike = Union[date, datetime]


def _as_date(value: DateLike) -> date:
    # datetime is a subclass of date, so test it first
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_day(value: DateLike) -> datetime:
    """First instant of the calendar day containing value"""
    return datetime.combine(_as_date(value), time.min)


def end_of_day(value: DateLike) -> datetime:
    """Last instant of the calendar day containing value"""
    return datetime.combine(_as_date(value), time.max)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """
    Half-open overlap test for [a_start, a_end) and [b_start, b_end).

    Touching endpoints (a_end == b_start) do not overlap.
    """
    return a_start < b_end and a_end > b_start


def date_within_day_range(day: DateLike, range_start: DateLike, range_end: DateLike) -> bool:
    """True if day falls on or between the calendar days of range_start and range_end"""
    check = _as_date(day)
    return _as_date(range_start) <= check <= _as_date(range_end)


def is_same_calendar_day(d1: DateLike, d2: DateLike) -> bool:
    return _as_date(d1) == _as_date(d2)


def iter_days(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield every calendar date from start to end, both inclusive"""
    current = _as_date(start)
    last = _as_date(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def week_days(anchor: DateLike) -> List[date]:
    """Monday..Sunday of the week containing anchor"""
    anchor_day = _as_date(anchor)
    monday = anchor_day - timedelta(days=anchor_day.weekday())
    return [monday + timedelta(days=i) for i in range(7)]


def month_grid_days(anchor: DateLike) -> List[date]:
    """
    Six full weeks of dates covering the anchor's month.

    The grid starts on the Monday on or before the first of the month,
    so the layout is always 7 columns by 6 rows.
    """
    first = _as_date(anchor).replace(day=1)
    grid_start = first - timedelta(days=first.weekday())
    return [grid_start + timedelta(days=i) for i in range(42)]


def transplant_to_day(start: datetime, end: datetime, day: DateLike):
    """
    Move [start, end) onto another calendar day.

    The time-of-day of start is kept and the duration is preserved, so
    a shift crossing midnight still crosses midnight after the move.
    """
    duration = end - start
    new_start = datetime.combine(_as_date(day), start.timetz())
    return new_start, new_start + duration


def align_tz(value: datetime, reference: datetime) -> datetime:
    """
    Give a naive day bound the zone of reference.

    Absence bounds are wall-clock calendar days, so against an aware
    shift they are read in that shift's zone.
    """
    if value.tzinfo is None and reference.tzinfo is not None:
        return value.replace(tzinfo=reference.tzinfo)
    if value.tzinfo is not None and reference.tzinfo is None:
        return value.replace(tzinfo=None)
    return value
