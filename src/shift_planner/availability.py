"""
Availability Resolver for Shift Planner

Weekly availability grids (Monday..Sunday x morning/afternoon/evening)
and the advisory status a candidate shift carries against them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set


class AvailabilityStatus(Enum):
    AVAILABLE = "available"
    PREFERRED = "preferred"
    UNAVAILABLE = "unavailable"

    def next(self) -> 'AvailabilityStatus':
        """Successor used when a manager clicks through a grid slot"""
        return _STATUS_CYCLE[self]


_STATUS_CYCLE = {
    AvailabilityStatus.AVAILABLE: AvailabilityStatus.PREFERRED,
    AvailabilityStatus.PREFERRED: AvailabilityStatus.UNAVAILABLE,
    AvailabilityStatus.UNAVAILABLE: AvailabilityStatus.AVAILABLE,
}


class TimeBlock(Enum):
    MORNING = "morning"      # 00:00-11:59
    AFTERNOON = "afternoon"  # 12:00-17:59
    EVENING = "evening"      # 18:00-23:59


AFTERNOON_START_HOUR = 12
EVENING_START_HOUR = 18

DAYS_PER_WEEK = 7


def get_time_block(moment: datetime) -> TimeBlock:
    if moment.hour < AFTERNOON_START_HOUR:
        return TimeBlock.MORNING
    if moment.hour < EVENING_START_HOUR:
        return TimeBlock.AFTERNOON
    return TimeBlock.EVENING


def blocks_touched(start_time: datetime, end_time: datetime) -> Set[TimeBlock]:
    """
    Time blocks a shift touches on its start day.

    Only the two boundary instants are classified. A shift that starts
    in the morning and ends in the evening also covers the whole
    afternoon, so that block is added explicitly.
    """
    start_block = get_time_block(start_time)
    end_block = get_time_block(end_time)
    blocks = {start_block, end_block}
    if start_block is TimeBlock.MORNING and end_block is TimeBlock.EVENING:
        blocks.add(TimeBlock.AFTERNOON)
    return blocks


@dataclass
class DayAvailability:
    """Availability of one weekday, one status per time block"""
    morning: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    afternoon: AvailabilityStatus = AvailabilityStatus.AVAILABLE
    evening: AvailabilityStatus = AvailabilityStatus.AVAILABLE

    def status_for(self, block: TimeBlock) -> AvailabilityStatus:
        return getattr(self, block.value)

    def set_status(self, block: TimeBlock, status: AvailabilityStatus):
        setattr(self, block.value, status)

    def to_dict(self) -> Dict[str, str]:
        return {block.value: self.status_for(block).value for block in TimeBlock}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> 'DayAvailability':
        return cls(**{
            block.value: AvailabilityStatus(data.get(block.value, AvailabilityStatus.AVAILABLE.value))
            for block in TimeBlock
        })


@dataclass
class WeeklyAvailability:
    """Seven DayAvailability entries, index 0 = Monday ... 6 = Sunday"""
    days: List[DayAvailability] = field(
        default_factory=lambda: [DayAvailability() for _ in range(DAYS_PER_WEEK)]
    )

    def __post_init__(self):
        if len(self.days) != DAYS_PER_WEEK:
            raise ValueError(f"Weekly availability needs {DAYS_PER_WEEK} days, got {len(self.days)}")

    def __getitem__(self, weekday: int) -> DayAvailability:
        return self.days[weekday]

    def cycle(self, weekday: int, block: TimeBlock) -> AvailabilityStatus:
        """Advance one slot to its successor status and return the new status"""
        day = self.days[weekday]
        new_status = day.status_for(block).next()
        day.set_status(block, new_status)
        return new_status

    def to_list(self) -> List[Dict[str, str]]:
        return [day.to_dict() for day in self.days]

    @classmethod
    def from_list(cls, data: List[Dict[str, str]]) -> 'WeeklyAvailability':
        return cls(days=[DayAvailability.from_dict(day) for day in data])


@dataclass
class EmployeeAvailability:
    employee_id: str
    availability: WeeklyAvailability = field(default_factory=WeeklyAvailability)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "availability": self.availability.to_list()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EmployeeAvailability':
        return cls(
            employee_id=data["employeeId"],
            availability=WeeklyAvailability.from_list(data["availability"])
        )


def find_availability(employee_id: str,
                      availabilities: Iterable[EmployeeAvailability]) -> Optional[WeeklyAvailability]:
    for record in availabilities:
        if record.employee_id == employee_id:
            return record.availability
    return None


def get_availability_for_shift(employee_id: str, start_time: datetime, end_time: datetime,
                               availabilities: Iterable[EmployeeAvailability]) -> AvailabilityStatus:
    """
    Advisory availability status of a shift span for one employee.

    The most restrictive touched block wins: any UNAVAILABLE block makes
    the shift UNAVAILABLE, all-PREFERRED blocks make it PREFERRED, any
    other mix is AVAILABLE. Employees without a record are AVAILABLE.
    """
    weekly = find_availability(employee_id, availabilities)
    if weekly is None:
        return AvailabilityStatus.AVAILABLE

    # weekday() is already Monday = 0
    day_availability = weekly[start_time.weekday()]
    statuses = [day_availability.status_for(block) for block in blocks_touched(start_time, end_time)]

    if AvailabilityStatus.UNAVAILABLE in statuses:
        return AvailabilityStatus.UNAVAILABLE
    if all(status is AvailabilityStatus.PREFERRED for status in statuses):
        return AvailabilityStatus.PREFERRED
    return AvailabilityStatus.AVAILABLE
