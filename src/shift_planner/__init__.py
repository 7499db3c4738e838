"""
Shift Planner

Staff scheduling core: shifts, absences and holidays across locations
and departments, with conflict validation, availability scoring and
change tracking for employee notifications.
"""

__version__ = "1.0.0"
__author__ = "Shift Planner Team"
