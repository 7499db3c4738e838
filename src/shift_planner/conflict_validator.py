"""
Conflict Validator for Shift Planner

Decides whether a candidate shift, absence or drag-to-reschedule move
may occupy its time slot. Rejections are returned as tagged results
carrying display-ready context; nothing here raises for a business
rule outcome.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional, Tuple

from .availability import AvailabilityStatus, get_availability_for_shift
from .data_manager import Absence, DataManager, Shift, SpecialDay, SpecialDayType
from .intervals import align_tz, iter_days, is_same_calendar_day, overlaps, transplant_to_day

TIME_FORMAT = "%H:%M"
DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = f"{DATE_FORMAT} {TIME_FORMAT}"


class ConflictKind(Enum):
    INVALID_RANGE = "InvalidRange"
    MISSING_FIELDS = "MissingFields"
    HOLIDAY = "HolidayConflict"
    ABSENCE = "AbsenceConflict"
    SHIFT = "ShiftConflict"
    UNAVAILABLE = "UnavailableConflict"


class ConstraintViolation:
    """Display messages for each rejection"""
    SHIFT_INVALID_RANGE = "End time must be after start time."
    ABSENCE_INVALID_RANGE = "End date must be after start date."
    ABSENCE_MISSING_FIELDS = "Please select an employee and an absence type."
    SHIFT_ON_HOLIDAY = "Cannot schedule a shift on a {holiday_name} ({day})."
    ABSENCE_ON_HOLIDAY = "Cannot schedule absence on a {holiday_name} ({day})."
    MOVE_ON_HOLIDAY = "Cannot move shift to a {holiday_name} ({day})."
    ABSENCE_CONFLICT = "Employee is absent ({absence_name}) from {start} to {end}."
    MOVE_ABSENCE_CONFLICT = "Cannot move shift to a day where the employee is absent ({absence_name}) from {start} to {end}."
    SHIFT_CONFLICT = "This employee has a conflicting shift from {start} to {end}."
    UNAVAILABLE = "Employee is unavailable during this time."


@dataclass
class Conflict:
    """One specific rejection with the context interpolated into its message"""
    kind: ConflictKind
    message: str
    day: Optional[date] = None
    holiday_name: Optional[str] = None
    absence_name: Optional[str] = None
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    conflicting_id: Optional[str] = None


@dataclass
class ValidationResult:
    """Success, or exactly one Conflict. availability is advisory on success."""
    conflict: Optional[Conflict] = None
    availability: AvailabilityStatus = AvailabilityStatus.AVAILABLE

    @property
    def ok(self) -> bool:
        return self.conflict is None

    @property
    def kind(self) -> Optional[ConflictKind]:
        return self.conflict.kind if self.conflict else None

    @property
    def message(self) -> Optional[str]:
        return self.conflict.message if self.conflict else None


@dataclass
class MoveCheck:
    """Outcome of checking a drag move; candidate is None when the shift is not draggable"""
    candidate: Optional[Shift]
    conflict: Optional[Conflict] = None

    @property
    def ok(self) -> bool:
        return self.candidate is not None and self.conflict is None


class ConflictValidator:
    """Checks candidates against one tenant's shifts, absences and special days"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def blocking_holiday(self, day) -> Optional[Tuple[SpecialDay, SpecialDayType]]:
        """The all-day holiday on day, if any"""
        for special_day in self.data_manager.get_special_days():
            if not is_same_calendar_day(special_day.date, day):
                continue
            special_day_type = self.data_manager.get_special_day_type(special_day.type_id)
            if special_day.blocks_scheduling(special_day_type):
                return special_day, special_day_type
        return None

    def find_overlapping_absence(self, employee_id: str, start: datetime, end: datetime) -> Optional[Absence]:
        for absence in self.data_manager.get_absences(employee_id):
            if overlaps(start, end, align_tz(absence.start_date, start), align_tz(absence.end_date, start)):
                return absence
        return None

    def find_overlapping_shift(self, employee_id: str, start: datetime, end: datetime) -> Optional[Shift]:
        if employee_id is None:
            return None
        for shift in self.data_manager.get_shifts(employee_id=employee_id):
            reference = shift.start_time
            if overlaps(shift.start_time, shift.end_time, align_tz(start, reference), align_tz(end, reference)):
                return shift
        return None

    def availability_for(self, shift: Shift) -> AvailabilityStatus:
        if shift.is_open:
            return AvailabilityStatus.AVAILABLE
        return get_availability_for_shift(
            shift.employee_id, shift.start_time, shift.end_time,
            self.data_manager.get_availabilities()
        )

    def _holiday_conflict(self, day, template: str) -> Optional[Conflict]:
        holiday = self.blocking_holiday(day)
        if holiday is None:
            return None
        special_day, special_day_type = holiday
        holiday_name = special_day_type.name or "Holiday"
        return Conflict(
            kind=ConflictKind.HOLIDAY,
            message=template.format(holiday_name=holiday_name, day=special_day.date.strftime(DATE_FORMAT)),
            day=special_day.date,
            holiday_name=holiday_name,
            conflicting_id=special_day.id
        )

    def _absence_conflict(self, shift: Shift, template: str) -> Optional[Conflict]:
        absence = self.find_overlapping_absence(shift.employee_id, shift.start_time, shift.end_time)
        if absence is None:
            return None
        absence_type = self.data_manager.get_absence_type(absence.absence_type_id)
        absence_name = absence_type.name if absence_type else "Absence"
        return Conflict(
            kind=ConflictKind.ABSENCE,
            message=template.format(
                absence_name=absence_name,
                start=absence.start_date.strftime(DATETIME_FORMAT),
                end=absence.end_date.strftime(DATETIME_FORMAT)
            ),
            day=absence.start_date.date(),
            absence_name=absence_name,
            window_start=absence.start_date,
            window_end=absence.end_date,
            conflicting_id=absence.id
        )

    def check_shift(self, shift: Shift) -> ValidationResult:
        """
        Validate a shift being created or edited.

        Checks run in a fixed order and the first failure wins: time
        range, all-day holiday on the start date, then for assigned
        shifts an overlapping absence and declared unavailability.
        """
        if shift.end_time <= shift.start_time:
            return ValidationResult(Conflict(ConflictKind.INVALID_RANGE, ConstraintViolation.SHIFT_INVALID_RANGE))

        conflict = self._holiday_conflict(shift.start_time, ConstraintViolation.SHIFT_ON_HOLIDAY)
        if conflict:
            return ValidationResult(conflict)

        if shift.is_open:
            return ValidationResult()

        conflict = self._absence_conflict(shift, ConstraintViolation.ABSENCE_CONFLICT)
        if conflict:
            return ValidationResult(conflict)

        status = self.availability_for(shift)
        if status is AvailabilityStatus.UNAVAILABLE:
            return ValidationResult(
                Conflict(
                    kind=ConflictKind.UNAVAILABLE,
                    message=ConstraintViolation.UNAVAILABLE,
                    day=shift.start_time.date(),
                    window_start=shift.start_time,
                    window_end=shift.end_time
                ),
                availability=status
            )
        return ValidationResult(availability=status)

    def check_absence(self, absence: Absence) -> ValidationResult:
        """Validate an absence: date range, employee and type, holidays inside it, then overlapping shifts"""
        if absence.end_date < absence.start_date:
            return ValidationResult(Conflict(ConflictKind.INVALID_RANGE, ConstraintViolation.ABSENCE_INVALID_RANGE))

        if not absence.employee_id or not absence.absence_type_id:
            return ValidationResult(Conflict(ConflictKind.MISSING_FIELDS, ConstraintViolation.ABSENCE_MISSING_FIELDS))

        for day in iter_days(absence.start_date, absence.end_date):
            conflict = self._holiday_conflict(day, ConstraintViolation.ABSENCE_ON_HOLIDAY)
            if conflict:
                return ValidationResult(conflict)

        shift = self.find_overlapping_shift(absence.employee_id, absence.start_date, absence.end_date)
        if shift is not None:
            return ValidationResult(Conflict(
                kind=ConflictKind.SHIFT,
                message=ConstraintViolation.SHIFT_CONFLICT.format(
                    start=shift.start_time.strftime(TIME_FORMAT),
                    end=shift.end_time.strftime(TIME_FORMAT)
                ),
                day=shift.start_time.date(),
                window_start=shift.start_time,
                window_end=shift.end_time,
                conflicting_id=shift.id
            ))
        return ValidationResult()

    def check_move(self, shift: Shift, new_day, recheck_availability: bool = False) -> MoveCheck:
        """
        Validate dragging an assigned shift onto new_day.

        The shift keeps its time of day and duration. Holiday and absence
        checks always apply; availability only when recheck_availability
        is set. Open shifts are not draggable and yield no candidate.
        """
        if shift.is_open:
            return MoveCheck(candidate=None)

        new_start, new_end = transplant_to_day(shift.start_time, shift.end_time, new_day)
        candidate = replace(shift, start_time=new_start, end_time=new_end)

        conflict = self._holiday_conflict(new_start, ConstraintViolation.MOVE_ON_HOLIDAY)
        if conflict is None:
            conflict = self._absence_conflict(candidate, ConstraintViolation.MOVE_ABSENCE_CONFLICT)
        if conflict is None and recheck_availability:
            if self.availability_for(candidate) is AvailabilityStatus.UNAVAILABLE:
                conflict = Conflict(
                    kind=ConflictKind.UNAVAILABLE,
                    message=ConstraintViolation.UNAVAILABLE,
                    day=new_start.date(),
                    window_start=new_start,
                    window_end=new_end
                )
        return MoveCheck(candidate=candidate, conflict=conflict)
