"""Scheduling router - FastAPI endpoints for employees, appointments and settings"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ... import models
from ...database import get_db
from .entities import CalendarSettings
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    AvailabilityResponse,
    EmployeeCreate,
    EmployeeResponse,
    EmployeeUpdate,
    SettingsResponse,
    SettingsUpdate,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

employees_router = APIRouter(prefix="/employees", tags=["Employees"])
appointments_router = APIRouter(prefix="/appointments", tags=["Appointments"])
settings_router = APIRouter(prefix="/settings", tags=["Settings"])


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


def _employee_response(e: models.Employee) -> EmployeeResponse:
    return EmployeeResponse(
        id=e.id,
        firstName=e.first_name,
        color=e.color,
        dailyHours=e.daily_hours or {},
        holidays=e.holidays or [],
        createdAt=e.created_at,
        updatedAt=e.updated_at,
    )


def _appointment_response(a: models.Appointment, employee_missing: bool = False) -> AppointmentResponse:
    return AppointmentResponse(
        id=a.id,
        employeeId=a.employee_id,
        date=a.date,
        startHour=a.start_hour,
        startMinute=a.start_minute,
        durationMinutes=a.duration_minutes,
        customerName=a.customer_name,
        customerPhone=a.customer_phone,
        customerEmail=a.customer_email,
        serviceId=a.service_id,
        title=a.title,
        employeeMissing=employee_missing,
        createdAt=a.created_at,
        updatedAt=a.updated_at,
    )


def _settings_response(s: CalendarSettings) -> SettingsResponse:
    return SettingsResponse(
        calendarName=s.calendar_name,
        dailyHours={k: v.model_dump() for k, v in s.daily_hours.items()},
        services=[
            {"id": svc.id, "name": svc.name, "durationMinutes": svc.duration_minutes}
            for svc in s.services
        ],
        holidays=[h.model_dump() for h in s.holidays],
    )


# ============================================================================
# EMPLOYEES
# ============================================================================


@employees_router.get("", response_model=list[EmployeeResponse])
def get_employees(service: SchedulingService = Depends(get_scheduling_service)):
    """Get all employees in creation order"""
    return [_employee_response(e) for e in service.list_employees()]


@employees_router.post("", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
def create_employee(
    data: EmployeeCreate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Create a new employee"""
    return _employee_response(service.create_employee(data))


@employees_router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(
    employee_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return _employee_response(service.get_employee(employee_id))


@employees_router.put("/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    employee_id: str,
    data: EmployeeUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Update name, color, hours or holidays of an employee"""
    return _employee_response(service.update_employee(employee_id, data))


@employees_router.delete("/{employee_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_employee(
    employee_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Delete an employee; their appointments are kept"""
    service.delete_employee(employee_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@employees_router.get("/{employee_id}/availability", response_model=AvailabilityResponse)
def get_employee_availability(
    employee_id: str,
    day: date = Query(..., alias="date", description="Calendar date (YYYY-MM-DD)"),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Effective working hours of an employee on a date"""
    result = service.employee_availability(employee_id, day)
    return AvailabilityResponse(employeeId=employee_id, date=day, **result)


# ============================================================================
# APPOINTMENTS
# ============================================================================


@appointments_router.get("", response_model=list[AppointmentResponse])
def get_appointments(
    service: SchedulingService = Depends(get_scheduling_service),
    employee_id: Optional[str] = Query(None, alias="employeeId"),
    day: Optional[date] = Query(None, alias="date", description="Calendar date (YYYY-MM-DD)"),
):
    """Get appointments, optionally filtered by employee and date"""
    return [
        _appointment_response(a, missing) for a, missing in service.list_appointments(employee_id, day)
    ]


@appointments_router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: AppointmentCreate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Book an appointment after the availability and conflict checks"""
    return _appointment_response(service.create_appointment(data))


@appointments_router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    appointment = service.get_appointment(appointment_id)
    return _appointment_response(appointment, service.is_orphaned(appointment))


@appointments_router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Move or edit an appointment; it never conflicts with itself"""
    return _appointment_response(service.update_appointment(appointment_id, data))


@appointments_router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: str,
    service: SchedulingService = Depends(get_scheduling_service),
):
    service.delete_appointment(appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# SETTINGS
# ============================================================================


@settings_router.get("", response_model=SettingsResponse)
def get_settings(service: SchedulingService = Depends(get_scheduling_service)):
    """Get calendar settings, creating the defaults on first access"""
    return _settings_response(service.get_settings())


@settings_router.post("", response_model=SettingsResponse)
def update_settings(
    data: SettingsUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Replace the calendar settings document"""
    return _settings_response(service.update_settings(data))
