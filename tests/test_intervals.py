import pytest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_planner.intervals import (
    align_tz, date_within_day_range, end_of_day, is_same_calendar_day, iter_days,
    month_grid_days, overlaps, start_of_day, transplant_to_day, week_days
)

T = datetime(2025, 10, 6, 12, 0)
H = timedelta(hours=1)


@pytest.mark.parametrize(
    "a_start, a_end, b_start, b_end, expected",
    [
        (T, T + 4 * H, T + 2 * H, T + 6 * H, True),    # partial overlap
        (T, T + 8 * H, T + 2 * H, T + 3 * H, True),    # containment
        (T, T + 2 * H, T + 2 * H, T + 4 * H, False),   # touching at T+2h
        (T, T + 1 * H, T + 3 * H, T + 4 * H, False),   # disjoint
        (T, T + 2 * H, T, T + 2 * H, True),            # identical
    ]
)
def test_overlap_is_symmetric(a_start, a_end, b_start, b_end, expected):
    assert overlaps(a_start, a_end, b_start, b_end) is expected
    assert overlaps(b_start, b_end, a_start, a_end) is expected


def test_touching_shifts_never_overlap():
    morning = (datetime(2025, 10, 6, 6, 0), datetime(2025, 10, 6, 14, 0))
    late = (datetime(2025, 10, 6, 14, 0), datetime(2025, 10, 6, 22, 0))
    assert not overlaps(*morning, *late)
    assert not overlaps(*late, *morning)


def test_date_within_day_range_ignores_time_of_day():
    start = datetime(2025, 10, 7, 23, 30)
    end = datetime(2025, 10, 9, 0, 15)
    assert date_within_day_range(datetime(2025, 10, 7, 0, 0), start, end)
    assert date_within_day_range(date(2025, 10, 9), start, end)
    assert not date_within_day_range(date(2025, 10, 6), start, end)
    assert not date_within_day_range(datetime(2025, 10, 10, 0, 0), start, end)


def test_is_same_calendar_day():
    assert is_same_calendar_day(datetime(2025, 10, 6, 0, 0), datetime(2025, 10, 6, 23, 59))
    assert is_same_calendar_day(date(2025, 10, 6), datetime(2025, 10, 6, 9, 0))
    assert not is_same_calendar_day(datetime(2025, 10, 6, 23, 59), datetime(2025, 10, 7, 0, 0))


def test_day_bounds():
    assert start_of_day(datetime(2025, 10, 6, 15, 45)) == datetime(2025, 10, 6, 0, 0)
    last = end_of_day(date(2025, 10, 6))
    assert last.date() == date(2025, 10, 6)
    assert last + timedelta(microseconds=1) == datetime(2025, 10, 7, 0, 0)


def test_iter_days_is_inclusive():
    days = list(iter_days(date(2025, 10, 30), date(2025, 11, 2)))
    assert days == [date(2025, 10, 30), date(2025, 10, 31), date(2025, 11, 1), date(2025, 11, 2)]
    assert list(iter_days(date(2025, 10, 2), date(2025, 10, 1))) == []


def test_week_days_start_on_monday():
    days = week_days(date(2025, 10, 12))  # a Sunday
    assert days[0] == date(2025, 10, 6)
    assert days[-1] == date(2025, 10, 12)
    assert [d.weekday() for d in days] == list(range(7))


def test_month_grid_covers_six_weeks():
    grid = month_grid_days(date(2025, 10, 15))
    assert len(grid) == 42
    assert grid[0] == date(2025, 9, 29)
    assert grid[-1] == date(2025, 11, 9)
    assert date(2025, 10, 1) in grid and date(2025, 10, 31) in grid


def test_transplant_preserves_time_of_day_and_duration():
    start = datetime(2025, 10, 6, 22, 0)
    end = datetime(2025, 10, 7, 6, 0)
    new_start, new_end = transplant_to_day(start, end, date(2025, 10, 9))
    assert new_start == datetime(2025, 10, 9, 22, 0)
    assert new_end == datetime(2025, 10, 10, 6, 0)
    assert new_end - new_start == end - start


def test_align_tz_reads_day_bounds_in_the_reference_zone():
    plus_two = timezone(timedelta(hours=2))
    aware = datetime(2025, 10, 8, 9, 0, tzinfo=plus_two)
    day_start = start_of_day(date(2025, 10, 8))

    aligned = align_tz(day_start, aware)
    assert aligned == datetime(2025, 10, 8, 0, 0, tzinfo=plus_two)
    assert overlaps(aware, aware + 8 * H, aligned, align_tz(end_of_day(date(2025, 10, 8)), aware))

    assert align_tz(aware, T) == datetime(2025, 10, 8, 9, 0)
    assert align_tz(day_start, T) is day_start
