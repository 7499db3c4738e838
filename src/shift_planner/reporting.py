"""
Reporting Module for Shift Planner

Dashboard statistics over one tenant's shifts and absences, built on
pandas DataFrames.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
import logging

import pandas as pd

from .data_manager import Absence, DataManager, Shift
from .intervals import end_of_day, start_of_day, week_days

logger = logging.getLogger(__name__)

SHIFT_COLUMNS = ['Shift_ID', 'Employee_ID', 'Employee', 'Role', 'Department', 'Start', 'End', 'Hours']


class DashboardReport:
    """Builds the dashboard figures for one DataManager"""

    def __init__(self, data_manager: DataManager):
        self.data_manager = data_manager

    def shift_frame(self, shifts: List[Shift]) -> pd.DataFrame:
        """One row per shift with employee details and duration in hours"""
        employees = {e.id: e for e in self.data_manager.get_employees()}
        departments = {d.id: d.name for d in self.data_manager.get_departments()}

        rows = []
        for shift in shifts:
            employee = employees.get(shift.employee_id)
            rows.append({
                'Shift_ID': shift.id,
                'Employee_ID': shift.employee_id,
                'Employee': employee.name if employee else '',
                'Role': employee.role if employee else '',
                'Department': departments.get(shift.department_id, ''),
                'Start': shift.start_time,
                'End': shift.end_time,
                'Hours': shift.duration.total_seconds() / 3600,
            })
        return pd.DataFrame(rows, columns=SHIFT_COLUMNS)

    def week_shift_frame(self, today: date) -> pd.DataFrame:
        """Shifts starting in the Monday-to-Sunday week containing today"""
        days = week_days(today)
        shifts = self.data_manager.get_shifts(start=start_of_day(days[0]), end=end_of_day(days[-1]))
        return self.shift_frame(shifts)

    def hours_by_role(self, frame: pd.DataFrame) -> Dict[str, float]:
        """Hours per role; every known role is listed, unused ones at zero"""
        totals = frame.groupby('Role')['Hours'].sum() if not frame.empty else pd.Series(dtype=float)
        return {role.name: float(totals.get(role.name, 0.0)) for role in self.data_manager.get_roles()}

    def hours_by_employee(self, frame: pd.DataFrame) -> pd.DataFrame:
        assigned = frame[frame['Employee_ID'].notna()]
        if assigned.empty:
            return pd.DataFrame(columns=['Employee', 'Shifts', 'Hours'])
        summary = assigned.groupby('Employee').agg(Shifts=('Shift_ID', 'count'), Hours=('Hours', 'sum'))
        return summary.reset_index().sort_values('Hours', ascending=False)

    def weekly_summary(self, today: date) -> Dict[str, Any]:
        frame = self.week_shift_frame(today)
        logger.debug(f"Building weekly summary for {today.isoformat()} from {len(frame)} shifts")
        return {
            "total_employees": len(self.data_manager.get_employees()),
            "total_shifts": len(frame),
            "open_shifts": int(frame['Employee_ID'].isna().sum()),
            "total_hours": float(frame['Hours'].sum()) if not frame.empty else 0.0,
            "total_absences": len(self.data_manager.get_absences()),
            "hours_by_role": self.hours_by_role(frame),
        }

    def upcoming_shifts(self, now: datetime, limit: int = 5) -> List[Shift]:
        shifts = [s for s in self.data_manager.get_shifts() if s.start_time > now]
        return sorted(shifts, key=lambda s: s.start_time)[:limit]

    def upcoming_absences(self, now: datetime, limit: int = 3) -> List[Absence]:
        absences = [a for a in self.data_manager.get_absences() if a.start_date > now]
        return sorted(absences, key=lambda a: a.start_date)[:limit]

    def create_dashboard_summary(self, today: Optional[date] = None) -> str:
        """Create text summary for console display"""
        today = today or date.today()
        days = week_days(today)
        summary = self.weekly_summary(today)
        employees = {e.id: e.name for e in self.data_manager.get_employees()}

        text = f"""
SCHEDULE SUMMARY - week of {days[0].isoformat()} to {days[-1].isoformat()}

Team Overview:
• Total Employees: {summary['total_employees']}
• Total Absences: {summary['total_absences']}

Shift Distribution:
• Shifts This Week: {summary['total_shifts']}
• Open Shifts: {summary['open_shifts']}
• Total Hours: {summary['total_hours']:.1f}
"""
        if summary['hours_by_role']:
            text += "\nHours By Role:"
            for role_name, hours in summary['hours_by_role'].items():
                text += f"\n• {role_name}: {hours:.1f}"

        now = start_of_day(today)
        upcoming = self.upcoming_shifts(now)
        if upcoming:
            text += "\n\nUpcoming Shifts:"
            for shift in upcoming:
                who = employees.get(shift.employee_id, 'Open shift')
                text += f"\n• {shift.start_time:%a %d %b %H:%M}-{shift.end_time:%H:%M} {who}"

        pending = len(self.data_manager.get_pending_notifications())
        if pending:
            text += f"\n\n{pending} changed shifts not yet sent to employees"

        return text.strip()

