"""
Tests for the conflict rules applied when a shift or absence is saved.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
import sys
import tempfile
import os
import json

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_planner.availability import AvailabilityStatus, DayAvailability, WeeklyAvailability
from shift_planner.conflict_validator import ConflictKind, ConflictValidator
from shift_planner.data_manager import Absence, Coverage, DataManager, Shift, SpecialDay

# Week of Monday 2025-10-06
MON, TUE, WED, THU, FRI, SAT, SUN = (date(2025, 10, d) for d in range(6, 13))


def shift_on(day, start_hour, end_hour, employee_id=None, shift_id="shift-new"):
    return Shift(
        id=shift_id,
        employee_id=employee_id,
        start_time=datetime(day.year, day.month, day.day, start_hour),
        end_time=datetime(day.year, day.month, day.day, end_hour)
    )


@pytest.fixture
def data_manager():
    """Fixture for a clean DataManager instance for each test."""
    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as temp_file:
        temp_path = temp_file.name
        json.dump({}, temp_file)

    dm = DataManager(temp_path)
    yield dm
    os.unlink(temp_path)


@pytest.fixture
def staff(data_manager):
    """Two employees plus the absence and special day types the scenarios use."""
    return {
        "E": data_manager.add_employee("Erin", role="Nurse"),
        "F": data_manager.add_employee("Frank", role="Porter"),
        "vacation": data_manager.add_absence_type("Vacation"),
        "holiday": data_manager.add_special_day_type("Public Holiday", is_holiday=True),
        "event": data_manager.add_special_day_type("Staff Party", is_holiday=False),
    }


@pytest.fixture
def validator(data_manager):
    return ConflictValidator(data_manager)


def add_absence(data_manager, employee, absence_type, start, end, absence_id="abs-1"):
    absence = Absence(absence_id, employee.id, absence_type.id, start, end)
    data_manager.upsert_record("absences", absence.to_dict())
    return absence


def add_special_day(data_manager, day, special_day_type, coverage=Coverage.ALL_DAY):
    special_day = SpecialDay(f"sd-{day.isoformat()}", day, special_day_type.id, coverage)
    data_manager.upsert_record("specialDays", special_day.to_dict())
    return special_day


def add_shift(data_manager, shift):
    data_manager.upsert_record("shifts", shift.to_dict())
    return shift


# Shift validation

def test_valid_shift_is_accepted(validator, staff):
    result = validator.check_shift(shift_on(WED, 9, 17, staff["E"].id))
    assert result.ok
    assert result.conflict is None
    assert result.availability is AvailabilityStatus.AVAILABLE


@pytest.mark.parametrize("start_hour, end_hour", [(17, 9), (9, 9)])
def test_shift_must_end_after_it_starts(validator, staff, start_hour, end_hour):
    result = validator.check_shift(shift_on(WED, start_hour, end_hour, staff["E"].id))
    assert result.kind is ConflictKind.INVALID_RANGE


def test_absence_blocks_shift_with_window(data_manager, validator, staff):
    """Employee absent Tue-Sat cannot take a Wednesday 9-17 shift."""
    add_absence(data_manager, staff["E"], staff["vacation"], TUE, SAT)

    result = validator.check_shift(shift_on(WED, 9, 17, staff["E"].id))

    assert result.kind is ConflictKind.ABSENCE
    assert result.conflict.absence_name == "Vacation"
    assert result.conflict.window_start == datetime(2025, 10, 7, 0, 0)
    assert result.conflict.window_end.date() == SAT
    assert result.conflict.conflicting_id == "abs-1"
    assert "Vacation" in result.message
    assert "2025-10-07 00:00" in result.message


def test_absence_of_other_employee_does_not_block(data_manager, validator, staff):
    add_absence(data_manager, staff["F"], staff["vacation"], TUE, SAT)
    assert validator.check_shift(shift_on(WED, 9, 17, staff["E"].id)).ok


def test_shift_ending_at_absence_start_is_accepted(data_manager, validator, staff):
    add_absence(data_manager, staff["E"], staff["vacation"], TUE, SAT)
    evening = Shift("shift-late", staff["E"].id, datetime(2025, 10, 6, 16, 0), datetime(2025, 10, 7, 0, 0))
    assert validator.check_shift(evening).ok


def test_holiday_blocks_any_shift(data_manager, validator, staff):
    add_special_day(data_manager, THU, staff["holiday"])

    for shift in (shift_on(THU, 9, 17, staff["E"].id), shift_on(THU, 9, 17)):
        result = validator.check_shift(shift)
        assert result.kind is ConflictKind.HOLIDAY
        assert result.conflict.holiday_name == "Public Holiday"
        assert result.conflict.day == THU
        assert "2025-10-09" in result.message


@pytest.mark.parametrize("type_key, coverage", [("event", Coverage.ALL_DAY), ("holiday", Coverage.MORNING)])
def test_non_blocking_special_days(data_manager, validator, staff, type_key, coverage):
    add_special_day(data_manager, THU, staff[type_key], coverage)
    assert validator.check_shift(shift_on(THU, 9, 17, staff["E"].id)).ok


def test_invalid_range_reported_before_holiday(data_manager, validator, staff):
    add_special_day(data_manager, THU, staff["holiday"])
    result = validator.check_shift(shift_on(THU, 17, 9, staff["E"].id))
    assert result.kind is ConflictKind.INVALID_RANGE


def test_holiday_reported_before_absence(data_manager, validator, staff):
    add_special_day(data_manager, WED, staff["holiday"])
    add_absence(data_manager, staff["E"], staff["vacation"], TUE, SAT)
    result = validator.check_shift(shift_on(WED, 9, 17, staff["E"].id))
    assert result.kind is ConflictKind.HOLIDAY


def test_open_shift_skips_employee_checks(data_manager, validator, staff):
    add_absence(data_manager, staff["E"], staff["vacation"], TUE, SAT)
    assert validator.check_shift(shift_on(WED, 9, 17)).ok


def test_unavailable_employee_is_rejected_and_preferred_is_advised(data_manager, validator, staff):
    """Frank is unavailable Monday mornings and prefers Monday afternoons."""
    weekly = WeeklyAvailability()
    weekly.days[0] = DayAvailability(
        morning=AvailabilityStatus.UNAVAILABLE,
        afternoon=AvailabilityStatus.PREFERRED
    )
    data_manager.set_employee_availability(staff["F"].id, weekly)

    rejected = validator.check_shift(shift_on(MON, 8, 12, staff["F"].id))
    assert rejected.kind is ConflictKind.UNAVAILABLE
    assert rejected.availability is AvailabilityStatus.UNAVAILABLE

    accepted = validator.check_shift(shift_on(MON, 13, 17, staff["F"].id))
    assert accepted.ok
    assert accepted.availability is AvailabilityStatus.PREFERRED


def test_absence_reported_before_unavailability(data_manager, validator, staff):
    weekly = WeeklyAvailability()
    weekly.days[2] = DayAvailability(morning=AvailabilityStatus.UNAVAILABLE)
    data_manager.set_employee_availability(staff["E"].id, weekly)
    add_absence(data_manager, staff["E"], staff["vacation"], WED, WED)

    result = validator.check_shift(shift_on(WED, 8, 11, staff["E"].id))
    assert result.kind is ConflictKind.ABSENCE


# Absence validation

def test_valid_absence_is_accepted(validator, staff):
    absence = Absence("abs-new", staff["E"].id, staff["vacation"].id, TUE, THU)
    assert validator.check_absence(absence).ok


def test_single_day_absence_is_valid(validator, staff):
    absence = Absence("abs-new", staff["E"].id, staff["vacation"].id, WED, WED)
    assert validator.check_absence(absence).ok


def test_absence_end_before_start_is_invalid(validator, staff):
    absence = Absence("abs-new", staff["E"].id, staff["vacation"].id, THU, TUE)
    assert validator.check_absence(absence).kind is ConflictKind.INVALID_RANGE


def test_absence_over_holiday_names_first_holiday(data_manager, validator, staff):
    add_special_day(data_manager, FRI, staff["holiday"])
    add_special_day(data_manager, THU, staff["holiday"])

    result = validator.check_absence(Absence("abs-new", staff["E"].id, staff["vacation"].id, MON, SUN))

    assert result.kind is ConflictKind.HOLIDAY
    assert result.conflict.day == THU
    assert "2025-10-09" in result.message


def test_absence_over_existing_shift_is_rejected(data_manager, validator, staff):
    add_shift(data_manager, shift_on(WED, 9, 17, staff["E"].id, shift_id="shift-wed"))

    result = validator.check_absence(Absence("abs-new", staff["E"].id, staff["vacation"].id, TUE, THU))

    assert result.kind is ConflictKind.SHIFT
    assert result.conflict.conflicting_id == "shift-wed"
    assert result.message == "This employee has a conflicting shift from 09:00 to 17:00."


def test_absence_ignores_other_employees_and_open_shifts(data_manager, validator, staff):
    add_shift(data_manager, shift_on(WED, 9, 17, staff["F"].id, shift_id="shift-f"))
    add_shift(data_manager, shift_on(WED, 9, 17, shift_id="shift-open"))
    assert validator.check_absence(Absence("abs-new", staff["E"].id, staff["vacation"].id, TUE, THU)).ok


def test_absence_after_overnight_shift_touching_midnight(data_manager, validator, staff):
    overnight = Shift("shift-night", staff["E"].id, datetime(2025, 10, 6, 16, 0), datetime(2025, 10, 7, 0, 0))
    add_shift(data_manager, overnight)
    assert validator.check_absence(Absence("abs-new", staff["E"].id, staff["vacation"].id, TUE, WED)).ok


def test_absence_without_employee_or_type_is_rejected(data_manager, validator, staff):
    """Frank's Wednesday shift must not be reported against an absence nobody owns."""
    add_shift(data_manager, shift_on(WED, 9, 17, staff["F"].id, shift_id="shift-f"))

    for absence in (
        Absence("abs-new", None, staff["vacation"].id, TUE, THU),
        Absence("abs-new", staff["E"].id, None, TUE, THU),
    ):
        result = validator.check_absence(absence)
        assert result.kind is ConflictKind.MISSING_FIELDS
        assert result.message == "Please select an employee and an absence type."


def test_invalid_range_reported_before_missing_fields(validator):
    result = validator.check_absence(Absence("abs-new", None, None, THU, TUE))
    assert result.kind is ConflictKind.INVALID_RANGE


def test_no_shift_overlaps_for_missing_employee(data_manager, validator, staff):
    add_shift(data_manager, shift_on(WED, 9, 17, staff["F"].id, shift_id="shift-f"))
    assert validator.find_overlapping_shift(None, datetime(2025, 10, 7), datetime(2025, 10, 9)) is None


# Shifts stored with a UTC offset

PLUS_TWO = timezone(timedelta(hours=2))


def aware_shift_on(day, start_hour, end_hour, employee_id, shift_id="shift-new"):
    return Shift(
        id=shift_id,
        employee_id=employee_id,
        start_time=datetime(day.year, day.month, day.day, start_hour, tzinfo=PLUS_TWO),
        end_time=datetime(day.year, day.month, day.day, end_hour, tzinfo=PLUS_TWO)
    )


def test_aware_shift_against_absence(data_manager, validator, staff):
    add_absence(data_manager, staff["E"], staff["vacation"], TUE, SAT)

    result = validator.check_shift(aware_shift_on(WED, 9, 17, staff["E"].id))
    assert result.kind is ConflictKind.ABSENCE

    assert validator.check_shift(aware_shift_on(MON, 9, 17, staff["E"].id)).ok


def test_absence_against_aware_stored_shift(data_manager, validator, staff):
    add_shift(data_manager, aware_shift_on(WED, 9, 17, staff["E"].id, shift_id="shift-wed"))

    result = validator.check_absence(Absence("abs-new", staff["E"].id, staff["vacation"].id, TUE, THU))
    assert result.kind is ConflictKind.SHIFT
    assert result.message == "This employee has a conflicting shift from 09:00 to 17:00."

    assert validator.check_absence(Absence("abs-new", staff["E"].id, staff["vacation"].id, THU, FRI)).ok


def test_aware_shift_loaded_from_utc_timestamp(data_manager, validator, staff):
    add_absence(data_manager, staff["E"], staff["vacation"], TUE, SAT)
    shift = Shift.from_dict({
        "id": "shift-utc",
        "employeeId": staff["E"].id,
        "startTime": "2025-10-08T07:00:00+00:00",
        "endTime": "2025-10-08T15:00:00+00:00",
    })
    assert validator.check_shift(shift).kind is ConflictKind.ABSENCE
    assert validator.check_move(shift, MON).ok
