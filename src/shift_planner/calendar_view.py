"""
Calendar view helpers: filtering and per-day item lookups for the week
and month grids.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .data_manager import Absence, Employee, Shift, SpecialDay, SpecialDayType
from .intervals import date_within_day_range, is_same_calendar_day


@dataclass
class CalendarFilter:
    """Empty criteria match everything"""
    employee_ids: List[str] = field(default_factory=list)
    role_names: List[str] = field(default_factory=list)
    department_ids: List[str] = field(default_factory=list)

    def _employee_matches(self, employee: Employee) -> bool:
        if self.employee_ids and employee.id not in self.employee_ids:
            return False
        if self.role_names and employee.role not in self.role_names:
            return False
        return True

    def apply(self, shifts: Iterable[Shift], absences: Iterable[Absence],
              employees: Iterable[Employee]) -> Tuple[List[Shift], List[Absence]]:
        employee_map = {e.id: e for e in employees}

        filtered_shifts = []
        for shift in shifts:
            # Open shifts bypass the employee filters
            if shift.is_open:
                filtered_shifts.append(shift)
                continue
            employee = employee_map.get(shift.employee_id)
            if employee is None or not self._employee_matches(employee):
                continue
            if self.department_ids and shift.department_id not in self.department_ids:
                continue
            filtered_shifts.append(shift)

        filtered_absences = [
            absence for absence in absences
            if absence.employee_id in employee_map and self._employee_matches(employee_map[absence.employee_id])
        ]
        return filtered_shifts, filtered_absences


def open_shifts_for_day(shifts: Iterable[Shift], day) -> List[Shift]:
    return sorted(
        (s for s in shifts if s.is_open and is_same_calendar_day(s.start_time, day)),
        key=lambda s: s.start_time
    )


def assigned_shifts_for_day(shifts: Iterable[Shift], day) -> List[Shift]:
    """Assigned shifts touching day, including ones that started the day before"""
    return sorted(
        (s for s in shifts if not s.is_open and date_within_day_range(day, s.start_time, s.end_time)),
        key=lambda s: s.start_time
    )


def absences_for_day(absences: Iterable[Absence], day) -> List[Absence]:
    return [a for a in absences if date_within_day_range(day, a.start_date, a.end_date)]


def holiday_for_day(special_days: Iterable[SpecialDay], special_day_types: Iterable[SpecialDayType],
                    day) -> Optional[SpecialDayType]:
    types = {t.id: t for t in special_day_types}
    for special_day in special_days:
        if is_same_calendar_day(special_day.date, day):
            special_day_type = types.get(special_day.type_id)
            if special_day.blocks_scheduling(special_day_type):
                return special_day_type
    return None
