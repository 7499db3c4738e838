"""
Schedule Mutation Engine for Shift Planner

Commits validated changes to one tenant's shifts, absences and special
days, and tracks which shifts changed since employees were last
notified.
"""

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional

from .availability import AvailabilityStatus, TimeBlock, WeeklyAvailability
from .conflict_validator import Conflict, ConflictValidator, ValidationResult
from .data_manager import Absence, Coverage, DataManager, Shift, SpecialDay, new_id

logger = logging.getLogger(__name__)


@dataclass
class MoveResult:
    """Outcome of a drag move. On rejection shift is the untouched original."""
    moved: bool
    shift: Optional[Shift] = None
    conflict: Optional[Conflict] = None


class NotificationDispatcher:
    """Sends changed shifts to their employees. Subclass and override send()."""

    def send(self, shifts: List[Shift]) -> None:
        raise NotImplementedError


class LoggingDispatcher(NotificationDispatcher):
    """Dispatcher that only records each notification in the log"""

    def send(self, shifts: List[Shift]) -> None:
        for shift in shifts:
            logger.info(
                f"Notify employee {shift.employee_id or '(open shift)'}: shift {shift.id} "
                f"{shift.start_time.isoformat()} - {shift.end_time.isoformat()}"
            )


class ScheduleEngine:
    """
    Applies create/update/delete/move operations for one tenant.

    The commit methods (create_or_update_*, delete_*) trust their input;
    save_shift, save_absence and move_shift run the ConflictValidator
    first. Mutations are serialized on the tenant DataManager's lock, so
    engines sharing one DataManager also share its pending set.
    """

    def __init__(self, data_manager: DataManager,
                 recheck_availability_on_move: Optional[bool] = None):
        self.data_manager = data_manager
        self.validator = ConflictValidator(data_manager)
        self._recheck_override = recheck_availability_on_move
        self._lock = data_manager.lock

    @property
    def recheck_availability_on_move(self) -> bool:
        if self._recheck_override is not None:
            return self._recheck_override
        return bool(self.data_manager.get_setting("recheckAvailabilityOnMove", False))

    # Pending notifications
    @property
    def pending_notifications(self) -> FrozenSet[str]:
        return frozenset(self.data_manager.get_pending_notifications())

    def _mark_pending(self, shift_id: str):
        pending = set(self.data_manager.get_pending_notifications())
        pending.add(shift_id)
        self.data_manager.set_pending_notifications(pending)

    def clear_pending_notifications(self):
        with self._lock:
            self.data_manager.set_pending_notifications([])

    def notify_employees(self, dispatcher: NotificationDispatcher) -> int:
        """Send every pending shift through dispatcher, then clear the pending set"""
        with self._lock:
            shifts = [
                shift for shift in (
                    self.data_manager.get_shift_by_id(i) for i in sorted(self.data_manager.get_pending_notifications())
                )
                if shift is not None
            ]
            dispatcher.send(shifts)
            count = len(shifts)
            self.clear_pending_notifications()
        logger.info(f"Notified employees about {count} changed shifts")
        return count

    # Shifts
    def create_or_update_shift(self, shift: Shift) -> Shift:
        with self._lock:
            created = self.data_manager.upsert_record("shifts", shift.to_dict())
            self._mark_pending(shift.id)
        logger.info(f"{'Created' if created else 'Updated'} shift {shift.id}")
        return shift

    def delete_shift(self, shift_id: str) -> bool:
        return bool(self.delete_shifts([shift_id]))

    def delete_shifts(self, shift_ids: Iterable[str]) -> List[str]:
        with self._lock:
            removed = self.data_manager.remove_records("shifts", shift_ids)
            pending = set(self.data_manager.get_pending_notifications()).difference(removed)
            self.data_manager.set_pending_notifications(pending)
        if removed:
            logger.info(f"Deleted {len(removed)} shifts")
        return removed

    def save_shift(self, shift: Shift) -> ValidationResult:
        """Editor flow: validate, then commit only if accepted"""
        with self._lock:
            result = self.validator.check_shift(shift)
            if not result.ok:
                logger.warning(f"Rejected shift {shift.id}: {result.kind.value} - {result.message}")
                return result
            self.create_or_update_shift(shift)
        if result.availability is AvailabilityStatus.PREFERRED:
            logger.debug(f"Shift {shift.id} falls in preferred time")
        return result

    def move_shift(self, shift_id: str, new_day) -> MoveResult:
        """
        Drag an assigned shift to new_day, keeping its time of day and duration.

        Rejections leave the shift and the pending set untouched and are
        reported through the returned MoveResult.
        """
        with self._lock:
            shift = self.data_manager.get_shift_by_id(shift_id)
            if shift is None:
                logger.warning(f"Cannot move unknown shift {shift_id}")
                return MoveResult(moved=False)

            check = self.validator.check_move(shift, new_day, self.recheck_availability_on_move)
            if check.candidate is None:
                return MoveResult(moved=False, shift=shift)
            if check.conflict is not None:
                logger.warning(f"Move of shift {shift_id} rejected: {check.conflict.message}")
                return MoveResult(moved=False, shift=shift, conflict=check.conflict)

            self.create_or_update_shift(check.candidate)
            return MoveResult(moved=True, shift=check.candidate)

    # Absences
    def create_or_update_absence(self, absence: Absence) -> Absence:
        with self._lock:
            created = self.data_manager.upsert_record("absences", absence.to_dict())
        logger.info(f"{'Created' if created else 'Updated'} absence {absence.id}")
        return absence

    def delete_absence(self, absence_id: str) -> bool:
        with self._lock:
            removed = self.data_manager.remove_records("absences", [absence_id])
        return bool(removed)

    def save_absence(self, absence: Absence) -> ValidationResult:
        with self._lock:
            result = self.validator.check_absence(absence)
            if not result.ok:
                logger.warning(f"Rejected absence {absence.id}: {result.kind.value} - {result.message}")
                return result
            self.create_or_update_absence(absence)
        return result

    # Special days
    def create_or_update_special_day(self, day, type_id: str,
                                     coverage: Coverage = Coverage.ALL_DAY) -> SpecialDay:
        """Find the special day on day and update it, or create one"""
        with self._lock:
            existing = self.data_manager.get_special_day_for(day)
            special_day = SpecialDay(
                id=existing.id if existing else new_id("sd"),
                date=day,
                type_id=type_id,
                coverage=coverage
            )
            self.data_manager.upsert_record("specialDays", special_day.to_dict())
        return special_day

    def delete_special_day(self, special_day_id: str) -> bool:
        with self._lock:
            removed = self.data_manager.remove_records("specialDays", [special_day_id])
        return bool(removed)

    # Availability
    def set_employee_availability(self, employee_id: str, availability: WeeklyAvailability):
        with self._lock:
            self.data_manager.set_employee_availability(employee_id, availability)

    def cycle_availability(self, employee_id: str, weekday: int, block: TimeBlock) -> AvailabilityStatus:
        """Advance one grid slot to its next status; employees without a grid start all-available"""
        with self._lock:
            availability = self.data_manager.get_employee_availability(employee_id) or WeeklyAvailability()
            new_status = availability.cycle(weekday, block)
            self.data_manager.set_employee_availability(employee_id, availability)
        return new_status

    def persist(self) -> bool:
        with self._lock:
            return self.data_manager.save_data()
