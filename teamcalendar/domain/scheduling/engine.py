"""
Validation & conflict engine

Decides whether a proposed appointment (create or update) is admissible.
Pure: reads only its arguments, never touches storage or the clock.
"""

import logging
from typing import Iterable, Optional

from .availability import GLOBAL_HOLIDAY, holiday_source, working_hours
from .entities import MINUTES_PER_DAY, Appointment, CalendarSettings, Employee
from .errors import (
    ConflictingAppointment,
    EmployeeUnavailable,
    InvalidTimeRange,
    OutsideWorkingHours,
    UnknownEmployee,
)

logger = logging.getLogger(__name__)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap: [a, b) and [b, c) do not overlap."""
    return start_a < end_b and start_b < end_a


def _fmt(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def find_conflicts(
    proposed: Appointment,
    existing: Iterable[Appointment],
    excluding_id: Optional[str] = None,
) -> list[Appointment]:
    """
    All existing appointments that collide with `proposed`.

    Only appointments of the same employee and date are considered; the one
    with `excluding_id` (the appointment being edited) is skipped.
    Result is ordered by start time, then id.
    """
    conflicts = [
        other
        for other in existing
        if other.employee_id == proposed.employee_id
        and other.date == proposed.date
        and (excluding_id is None or other.id != excluding_id)
        and overlaps(
            proposed.start_minutes, proposed.end_minutes, other.start_minutes, other.end_minutes
        )
    ]
    conflicts.sort(key=lambda a: (a.start_minutes, a.id or ""))
    return conflicts


def _check_time_range(proposed: Appointment) -> None:
    if proposed.duration_minutes <= 0:
        raise InvalidTimeRange("durationMinutes must be greater than 0")
    if not 0 <= proposed.start_hour <= 23:
        raise InvalidTimeRange("startHour must be between 0 and 23")
    if not 0 <= proposed.start_minute <= 59:
        raise InvalidTimeRange("startMinute must be between 0 and 59")
    if proposed.end_minutes > MINUTES_PER_DAY:
        raise InvalidTimeRange(
            f"Appointment starting at {_fmt(proposed.start_minutes)} for "
            f"{proposed.duration_minutes} minutes would end after midnight"
        )


def evaluate(
    proposed: Appointment,
    existing: list[Appointment],
    employee: Optional[Employee],
    settings: CalendarSettings,
    excluding_id: Optional[str] = None,
) -> Appointment:
    """
    Validate a proposed appointment against the calendar.

    Args:
        proposed: appointment to create or the updated state of one
        existing: appointments already stored for the same employee and date
        employee: the referenced employee, None if it does not exist
        settings: calendar settings (global hours and holidays)
        excluding_id: id of the appointment being updated, skipped in the conflict check

    Returns:
        `proposed`, unchanged

    Raises:
        UnknownEmployee, InvalidTimeRange, EmployeeUnavailable,
        OutsideWorkingHours, ConflictingAppointment: first failed check, in that order
    """
    if employee is None or employee.id != proposed.employee_id:
        raise UnknownEmployee(
            f"Employee {proposed.employee_id} does not exist", employeeId=proposed.employee_id
        )

    _check_time_range(proposed)

    source = holiday_source(employee, settings, proposed.date)
    if source is not None:
        who = "The calendar" if source == GLOBAL_HOLIDAY else employee.first_name
        raise EmployeeUnavailable(
            f"{who} is on holiday on {proposed.date.isoformat()}",
            reason="holiday",
            holiday=source,
        )

    hours = working_hours(employee, settings, proposed.date)
    if hours is None:
        raise OutsideWorkingHours(
            f"{employee.first_name} does not work on {proposed.date.isoformat()}",
            workingHours=None,
        )
    if proposed.start_minutes < hours.start_minutes or proposed.end_minutes > hours.end_minutes:
        raise OutsideWorkingHours(
            f"{_fmt(proposed.start_minutes)}-{_fmt(proposed.end_minutes)} is outside "
            f"working hours {_fmt(hours.start_minutes)}-{_fmt(hours.end_minutes)}",
            workingHours={"start": hours.start, "end": hours.end},
        )

    conflicts = find_conflicts(proposed, existing, excluding_id)
    if conflicts:
        first = conflicts[0]
        logger.debug(
            f"Appointment for {proposed.employee_id} on {proposed.date} collides with "
            f"{[c.id for c in conflicts]}"
        )
        raise ConflictingAppointment(
            f"{_fmt(proposed.start_minutes)}-{_fmt(proposed.end_minutes)} overlaps appointment "
            f"{first.id} ({_fmt(first.start_minutes)}-{_fmt(first.end_minutes)})",
            conflicting_id=first.id,
        )

    return proposed
