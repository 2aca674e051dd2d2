"""
Availability

Resolves the working interval of an employee on a calendar date.

Precedence, highest first:
    1. global holiday       -> unavailable
    2. employee holiday     -> unavailable
    3. employee weekday     -> used when enabled
    4. calendar weekday     -> used when enabled
    5. otherwise            -> unavailable
"""

from datetime import date
from typing import Optional

from ...shared.validators import weekday_key
from .entities import CalendarSettings, DailyHours, Employee

GLOBAL_HOLIDAY = "global"
EMPLOYEE_HOLIDAY = "employee"


def holiday_source(employee: Employee, settings: CalendarSettings, day: date) -> Optional[str]:
    """Which holiday list blocks `day`, or None when it is a regular day."""
    if any(h.contains(day) for h in settings.holidays):
        return GLOBAL_HOLIDAY
    if any(h.contains(day) for h in employee.holidays):
        return EMPLOYEE_HOLIDAY
    return None


def working_hours(employee: Employee, settings: CalendarSettings, day: date) -> Optional[DailyHours]:
    """Weekday interval from the fallback chain, ignoring holidays."""
    key = weekday_key(day)

    own = employee.daily_hours.get(key)
    if own is not None and own.enabled:
        return own

    default = settings.daily_hours.get(key)
    if default is not None and default.enabled:
        return default

    return None


def effective_hours(employee: Employee, settings: CalendarSettings, day: date) -> Optional[DailyHours]:
    """
    Effective working interval of `employee` on `day`.

    Returns:
        DailyHours with enabled=True, or None when the employee does not work that day
    """
    if holiday_source(employee, settings, day) is not None:
        return None
    return working_hours(employee, settings, day)
