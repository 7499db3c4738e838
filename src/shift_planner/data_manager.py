"""
Data Manager for Shift Planner

Holds one tenant's scheduling data (directories, shifts, absences,
special days, availability grids, pending notifications and settings)
and handles JSON persistence with atomic saves and backup recovery.
"""

import json
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .availability import EmployeeAvailability, WeeklyAvailability
from .intervals import align_tz, end_of_day, is_same_calendar_day, start_of_day

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
DEFAULT_DATA_FILE = "data/schedule_data.json"


class DataManagerError(Exception):
    """Base exception for DataManager operations"""
    pass


class DataFileCorruptedError(DataManagerError):
    """Raised when the data file is corrupted"""
    pass


class DataFileNotFoundError(DataManagerError):
    """Raised when the data file is not found"""
    pass


class DataSaveError(DataManagerError):
    """Raised when saving data fails"""
    pass


class DataValidationError(DataManagerError):
    """Raised when data validation fails"""
    pass


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def _parse_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _parse_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


# Directories (read-only lookups for the scheduling core)

@dataclass
class Employee:
    id: str
    name: str
    role: str = ""
    email: str = ""
    phone: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "role": self.role,
            "email": self.email,
            "phone": self.phone
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Employee':
        return cls(
            id=data["id"],
            name=data["name"],
            role=data.get("role", ""),
            email=data.get("email", ""),
            phone=data.get("phone", "")
        )


@dataclass
class Role:
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Role':
        return cls(id=data["id"], name=data["name"])


@dataclass
class Location:
    id: str
    name: str
    address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "address": self.address}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Location':
        return cls(id=data["id"], name=data["name"], address=data.get("address"))


@dataclass
class Department:
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Department':
        return cls(id=data["id"], name=data["name"])


@dataclass
class AbsenceType:
    id: str
    name: str
    color: str = "#cccccc"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AbsenceType':
        return cls(id=data["id"], name=data["name"], color=data.get("color", "#cccccc"))


@dataclass
class SpecialDayType:
    id: str
    name: str
    is_holiday: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "isHoliday": self.is_holiday}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpecialDayType':
        return cls(id=data["id"], name=data["name"], is_holiday=data.get("isHoliday", False))


# Schedule entities

@dataclass
class Shift:
    """A time-bounded shift; employee_id None marks an open (unassigned) shift"""
    id: str
    employee_id: Optional[str]
    start_time: datetime
    end_time: datetime
    location_id: Optional[str] = None
    department_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.employee_id is None

    @property
    def duration(self):
        return self.end_time - self.start_time

    @classmethod
    def new(cls, employee_id: Optional[str], start_time: datetime, end_time: datetime,
            location_id: Optional[str] = None, department_id: Optional[str] = None) -> 'Shift':
        return cls(new_id("shift"), employee_id, start_time, end_time, location_id, department_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "locationId": self.location_id,
            "departmentId": self.department_id
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Shift':
        return cls(
            id=data["id"],
            employee_id=data.get("employeeId"),
            start_time=_parse_datetime(data["startTime"]),
            end_time=_parse_datetime(data["endTime"]),
            location_id=data.get("locationId"),
            department_id=data.get("departmentId")
        )


@dataclass
class Absence:
    """
    An inclusive day-level absence.

    Bounds are normalized on construction: start_date to the first
    instant of its day, end_date to the last instant of its day.
    """
    id: str
    employee_id: str
    absence_type_id: str
    start_date: datetime
    end_date: datetime

    def __post_init__(self):
        self.start_date = start_of_day(self.start_date)
        self.end_date = end_of_day(self.end_date)

    @classmethod
    def new(cls, employee_id: str, absence_type_id: str, start_date, end_date) -> 'Absence':
        return cls(new_id("abs"), employee_id, absence_type_id, start_date, end_date)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "employeeId": self.employee_id,
            "absenceTypeId": self.absence_type_id,
            "startDate": self.start_date.date().isoformat(),
            "endDate": self.end_date.date().isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Absence':
        return cls(
            id=data["id"],
            employee_id=data["employeeId"],
            absence_type_id=data["absenceTypeId"],
            start_date=_parse_date(data["startDate"]),
            end_date=_parse_date(data["endDate"])
        )


class Coverage(Enum):
    ALL_DAY = "all-day"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


@dataclass
class SpecialDay:
    id: str
    date: date
    type_id: str
    coverage: Coverage = Coverage.ALL_DAY

    def __post_init__(self):
        self.date = _parse_date(self.date)
        self.coverage = Coverage(self.coverage)

    def blocks_scheduling(self, special_day_type: Optional[SpecialDayType]) -> bool:
        """Only an all-day holiday blocks shifts and absences"""
        return (special_day_type is not None
                and special_day_type.is_holiday
                and self.coverage is Coverage.ALL_DAY)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "typeId": self.type_id,
            "coverage": self.coverage.value
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SpecialDay':
        return cls(
            id=data["id"],
            date=_parse_date(data["date"]),
            type_id=data["typeId"],
            coverage=Coverage(data.get("coverage", Coverage.ALL_DAY.value))
        )


_DIRECTORY_TYPES = {
    "employees": Employee,
    "roles": Role,
    "locations": Location,
    "departments": Department,
    "absenceTypes": AbsenceType,
    "specialDayTypes": SpecialDayType,
}

REQUIRED_SECTIONS = [
    "settings", "employees", "roles", "locations", "departments", "absenceTypes",
    "specialDayTypes", "shifts", "absences", "specialDays", "availabilities",
    "pendingNotifications"
]


class DataManager:
    """Per-tenant repository: all collections plus persistence"""

    def __init__(self, data_file: str = DEFAULT_DATA_FILE, company_id: Optional[str] = None):
        self.data_file = self.resolve_data_file(data_file)
        self.lock = threading.RLock()
        self.data = self._load_or_create_data()
        if company_id is not None:
            self.set_setting("companyId", company_id)

    @staticmethod
    def resolve_data_file(data_file) -> Path:
        """The default data file lives beside the package, any other path is used as given"""
        if str(data_file) == DEFAULT_DATA_FILE:
            return Path(__file__).parent.parent / "data" / "schedule_data.json"
        return Path(data_file)

    def _read_json(self, path: Path) -> Dict[str, Any]:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def _recover_from_backup(self, backup_file: Path) -> Dict[str, Any]:
        try:
            logger.info(f"Attempting recovery from backup file {backup_file}")
            data = self._read_json(backup_file)
            # Restore backup to main file
            backup_file.replace(self.data_file)
            logger.info("Successfully recovered data from backup")
            return self._validate_and_migrate_data(data)
        except (json.JSONDecodeError, IOError) as backup_e:
            logger.error(f"Backup file corrupted: {backup_e}")
            logger.info("Creating default data due to corrupted backup")
            return self._create_default_data()

    def _load_or_create_data(self) -> Dict[str, Any]:
        """Load existing data or create default structure with recovery from backup"""
        backup_file = self.data_file.with_suffix('.bak')
        if self.data_file.exists():
            try:
                return self._validate_and_migrate_data(self._read_json(self.data_file))
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading main data file {self.data_file}: {e}")
                if backup_file.exists():
                    return self._recover_from_backup(backup_file)
                raise DataFileCorruptedError(f"Main data file corrupted and no backup available: {e}")

        if backup_file.exists():
            logger.info("Main data file missing")
            return self._recover_from_backup(backup_file)

        logger.info("No data file found, creating default data")
        return self._create_default_data()

    def _validate_and_migrate_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in any section missing from an older data file"""
        default_data = self._create_default_data()
        for key in default_data:
            if key not in data:
                data[key] = default_data[key]
        for key, value in default_data["settings"].items():
            data["settings"].setdefault(key, value)
        return data

    def _create_default_data(self) -> Dict[str, Any]:
        return {
            "settings": {
                "appVersion": APP_VERSION,
                "companyId": None,
                "recheckAvailabilityOnMove": False,
                "dataFile": str(self.data_file)
            },
            "employees": [],
            "roles": [],
            "locations": [],
            "departments": [],
            "absenceTypes": [],
            "specialDayTypes": [],
            "shifts": [],
            "absences": [],
            "specialDays": [],
            "availabilities": [],
            "pendingNotifications": []
        }

    def _validate_saved_data(self) -> bool:
        """Validate that the saved data file matches current data"""
        try:
            if not self.data_file.exists():
                raise DataFileNotFoundError(f"Saved data file {self.data_file} does not exist")

            saved_data = self._read_json(self.data_file)

            for key in REQUIRED_SECTIONS:
                if key not in saved_data:
                    raise DataValidationError(f"Required section '{key}' missing from saved data")

            if saved_data.get("settings", {}).get("appVersion") != self.data.get("settings", {}).get("appVersion"):
                raise DataValidationError("App version mismatch in saved data")

            return True

        except (json.JSONDecodeError, IOError) as e:
            raise DataValidationError(f"Failed to validate saved data: {e}")

    def _restore_backup(self, backup_file: Path):
        try:
            backup_file.replace(self.data_file)
        except OSError as restore_e:
            logger.error(f"Failed to restore from backup: {restore_e}", exc_info=True)

    def save_data(self) -> bool:
        """Save current data to file atomically with validation"""
        temp_file = None
        backup_file = self.data_file.with_suffix('.bak')
        moved_to_backup = False

        try:
            self.data_file.parent.mkdir(parents=True, exist_ok=True)
            if self.data_file.exists():
                self.data_file.replace(backup_file)
                moved_to_backup = True

            # Write to temporary file first, then rename into place
            temp_file = self.data_file.with_suffix('.tmp')
            with open(temp_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
            temp_file.replace(self.data_file)

            self._validate_saved_data()
            return True

        except DataValidationError as e:
            logger.error(f"Data validation failed after save: {e}", exc_info=True)
            if backup_file.exists():
                self._restore_backup(backup_file)
            raise DataSaveError(f"Save operation failed validation: {e}")

        except (IOError, OSError) as e:
            logger.error(f"I/O error during save operation: {e}", exc_info=True)
            if moved_to_backup and not self.data_file.exists():
                self._restore_backup(backup_file)
            raise DataSaveError(f"Failed to save data due to I/O error: {e}")

        except (TypeError, ValueError) as e:
            logger.error(f"Unexpected error during save operation: {e}", exc_info=True)
            if moved_to_backup and not self.data_file.exists():
                self._restore_backup(backup_file)
            raise DataSaveError(f"Unexpected error during save: {e}")

        finally:
            if temp_file and temp_file.exists():
                try:
                    temp_file.unlink()
                except OSError as cleanup_e:
                    logger.error(f"Failed to clean up temporary file {temp_file}: {cleanup_e}", exc_info=True)

    # Settings Management
    def get_setting(self, key: str, default=None):
        return self.data.get("settings", {}).get(key, default)

    def set_setting(self, key: str, value):
        self.data.setdefault("settings", {})[key] = value

    @property
    def company_id(self) -> Optional[str]:
        return self.get_setting("companyId")

    # Raw record storage, used by the schedule engine
    def upsert_record(self, section: str, record: Dict[str, Any]) -> bool:
        """Replace the record with the same id in place, or append it. Returns True if appended."""
        records = self.data.setdefault(section, [])
        for index, existing in enumerate(records):
            if existing["id"] == record["id"]:
                records[index] = record
                return False
        records.append(record)
        return True

    def remove_records(self, section: str, ids: Iterable[str]) -> List[str]:
        """Remove records by id and return the ids actually removed"""
        id_set = set(ids)
        records = self.data.setdefault(section, [])
        removed = [r["id"] for r in records if r["id"] in id_set]
        self.data[section] = [r for r in records if r["id"] not in id_set]
        return removed

    # Directory Management
    def set_directory(self, section: str, items: Iterable[Any]):
        """Replace a directory (employees, roles, ...) wholesale"""
        if section not in _DIRECTORY_TYPES:
            raise KeyError(f"Unknown directory '{section}'")
        self.data[section] = [item.to_dict() for item in items]

    def _get_directory(self, section: str) -> List[Any]:
        item_cls = _DIRECTORY_TYPES[section]
        return [item_cls.from_dict(d) for d in self.data.get(section, [])]

    def _find_in_directory(self, section: str, item_id: Optional[str]):
        if item_id is None:
            return None
        for d in self.data.get(section, []):
            if d["id"] == item_id:
                return _DIRECTORY_TYPES[section].from_dict(d)
        return None

    def add_employee(self, name: str, role: str = "", email: str = "", phone: str = "") -> Employee:
        employee = Employee(id=new_id("emp"), name=name, role=role, email=email, phone=phone)
        self.upsert_record("employees", employee.to_dict())
        return employee

    def add_role(self, name: str) -> Role:
        role = Role(id=new_id("role"), name=name)
        self.upsert_record("roles", role.to_dict())
        return role

    def add_department(self, name: str) -> Department:
        department = Department(id=new_id("dep"), name=name)
        self.upsert_record("departments", department.to_dict())
        return department

    def add_location(self, name: str, address: Optional[str] = None) -> Location:
        location = Location(id=new_id("loc"), name=name, address=address)
        self.upsert_record("locations", location.to_dict())
        return location

    def add_absence_type(self, name: str, color: str = "#cccccc") -> AbsenceType:
        absence_type = AbsenceType(id=new_id("at"), name=name, color=color)
        self.upsert_record("absenceTypes", absence_type.to_dict())
        return absence_type

    def add_special_day_type(self, name: str, is_holiday: bool = False) -> SpecialDayType:
        special_day_type = SpecialDayType(id=new_id("sdt"), name=name, is_holiday=is_holiday)
        self.upsert_record("specialDayTypes", special_day_type.to_dict())
        return special_day_type

    def get_employees(self) -> List[Employee]:
        return self._get_directory("employees")

    def get_employee_by_id(self, emp_id: Optional[str]) -> Optional[Employee]:
        return self._find_in_directory("employees", emp_id)

    def get_roles(self) -> List[Role]:
        return self._get_directory("roles")

    def get_locations(self) -> List[Location]:
        return self._get_directory("locations")

    def get_location(self, location_id: Optional[str]) -> Optional[Location]:
        return self._find_in_directory("locations", location_id)

    def get_departments(self) -> List[Department]:
        return self._get_directory("departments")

    def get_department(self, department_id: Optional[str]) -> Optional[Department]:
        return self._find_in_directory("departments", department_id)

    def get_absence_types(self) -> List[AbsenceType]:
        return self._get_directory("absenceTypes")

    def get_absence_type(self, absence_type_id: Optional[str]) -> Optional[AbsenceType]:
        return self._find_in_directory("absenceTypes", absence_type_id)

    def get_special_day_types(self) -> List[SpecialDayType]:
        return self._get_directory("specialDayTypes")

    def get_special_day_type(self, type_id: Optional[str]) -> Optional[SpecialDayType]:
        return self._find_in_directory("specialDayTypes", type_id)

    # Shift Management
    def get_shifts(self, employee_id: Optional[str] = None,
                   start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[Shift]:
        """Shifts, optionally filtered by employee and by start time window (inclusive)"""
        shifts = []
        for shift_data in self.data.get("shifts", []):
            shift = Shift.from_dict(shift_data)
            if employee_id is not None and shift.employee_id != employee_id:
                continue
            if start is not None and shift.start_time < align_tz(start, shift.start_time):
                continue
            if end is not None and shift.start_time > align_tz(end, shift.start_time):
                continue
            shifts.append(shift)
        return shifts

    def get_shift_by_id(self, shift_id: str) -> Optional[Shift]:
        for shift_data in self.data.get("shifts", []):
            if shift_data["id"] == shift_id:
                return Shift.from_dict(shift_data)
        return None

    # Absence Management
    def get_absences(self, employee_id: Optional[str] = None) -> List[Absence]:
        return [
            Absence.from_dict(d) for d in self.data.get("absences", [])
            if employee_id is None or d["employeeId"] == employee_id
        ]

    def get_absence_by_id(self, absence_id: str) -> Optional[Absence]:
        for absence_data in self.data.get("absences", []):
            if absence_data["id"] == absence_id:
                return Absence.from_dict(absence_data)
        return None

    # Special Day Management
    def get_special_days(self) -> List[SpecialDay]:
        return [SpecialDay.from_dict(d) for d in self.data.get("specialDays", [])]

    def get_special_day_for(self, day) -> Optional[SpecialDay]:
        for special_day in self.get_special_days():
            if is_same_calendar_day(special_day.date, day):
                return special_day
        return None

    # Availability Management
    def get_availabilities(self) -> List[EmployeeAvailability]:
        return [EmployeeAvailability.from_dict(d) for d in self.data.get("availabilities", [])]

    def get_employee_availability(self, employee_id: str) -> Optional[WeeklyAvailability]:
        for d in self.data.get("availabilities", []):
            if d["employeeId"] == employee_id:
                return EmployeeAvailability.from_dict(d).availability
        return None

    def set_employee_availability(self, employee_id: str, availability: WeeklyAvailability):
        record = EmployeeAvailability(employee_id=employee_id, availability=availability).to_dict()
        records = self.data.setdefault("availabilities", [])
        for index, existing in enumerate(records):
            if existing["employeeId"] == employee_id:
                records[index] = record
                return
        records.append(record)

    # Pending notifications
    def get_pending_notifications(self) -> List[str]:
        return list(self.data.get("pendingNotifications", []))

    def set_pending_notifications(self, shift_ids: Iterable[str]):
        self.data["pendingNotifications"] = sorted(set(shift_ids))
