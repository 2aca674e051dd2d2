"""Scheduling domain schemas - Pydantic models for the calendar front end"""

import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import (
    validate_email,
    validate_hex_color,
    validate_not_blank,
    validate_phone,
    validate_weekday_key,
)


class DailyHoursSchema(BaseModel):
    enabled: bool = False
    start: int = Field(9, ge=0, le=23)
    end: int = Field(18, ge=1, le=24)


class HolidaySchema(BaseModel):
    start: datetime.date
    end: datetime.date


class ServiceSchema(BaseModel):
    id: str
    name: str
    durationMinutes: int = Field(gt=0)


def _check_weekdays(v):
    if v:
        for key in v:
            validate_weekday_key(key)
    return v


# ============================================================================
# EMPLOYEES
# ============================================================================


class EmployeeCreate(BaseModel):
    """Schema for creating an employee"""

    firstName: str
    color: str
    dailyHours: dict[str, DailyHoursSchema] = Field(default_factory=dict)
    holidays: list[HolidaySchema] = Field(default_factory=list)

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        return validate_not_blank(v, "firstName")

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        return validate_hex_color(v)

    @field_validator("dailyHours")
    @classmethod
    def validate_daily_hours(cls, v):
        return _check_weekdays(v)


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee; omitted fields are kept"""

    firstName: Optional[str] = None
    color: Optional[str] = None
    dailyHours: Optional[dict[str, DailyHoursSchema]] = None
    holidays: Optional[list[HolidaySchema]] = None

    @field_validator("firstName")
    @classmethod
    def validate_first_name(cls, v):
        if v is not None:
            return validate_not_blank(v, "firstName")
        return v

    @field_validator("color")
    @classmethod
    def validate_color(cls, v):
        if v is not None:
            return validate_hex_color(v)
        return v

    @field_validator("dailyHours")
    @classmethod
    def validate_daily_hours(cls, v):
        return _check_weekdays(v)


class EmployeeResponse(BaseModel):
    id: str
    firstName: str
    color: str
    dailyHours: dict[str, DailyHoursSchema]
    holidays: list[HolidaySchema]
    createdAt: Optional[datetime.datetime] = None
    updatedAt: Optional[datetime.datetime] = None


class AvailabilityResponse(BaseModel):
    """Effective working interval of an employee on one date"""

    employeeId: str
    date: datetime.date
    available: bool
    start: Optional[int] = None
    end: Optional[int] = None
    reason: Optional[str] = None  # holiday, closed
    holiday: Optional[str] = None  # global, employee


# ============================================================================
# APPOINTMENTS
# ============================================================================


class AppointmentCreate(BaseModel):
    """Schema for creating an appointment"""

    employeeId: str
    date: datetime.date
    startHour: int
    startMinute: int = 0
    # Pre-filled from the selected service when omitted
    durationMinutes: Optional[int] = None
    customerName: str
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None
    serviceId: Optional[str] = None
    title: Optional[str] = None

    @field_validator("customerName")
    @classmethod
    def validate_customer_name(cls, v):
        return validate_not_blank(v, "customerName")

    @field_validator("customerPhone")
    @classmethod
    def validate_customer_phone(cls, v):
        if v:
            return validate_phone(v)
        return v or None

    @field_validator("customerEmail")
    @classmethod
    def validate_customer_email(cls, v):
        if v:
            return validate_email(v)
        return v or None


class AppointmentUpdate(BaseModel):
    """Schema for updating an appointment; only provided fields change"""

    employeeId: Optional[str] = None
    date: Optional[datetime.date] = None
    startHour: Optional[int] = None
    startMinute: Optional[int] = None
    durationMinutes: Optional[int] = None
    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None
    serviceId: Optional[str] = None
    title: Optional[str] = None

    @field_validator("customerName")
    @classmethod
    def validate_customer_name(cls, v):
        if v is not None:
            return validate_not_blank(v, "customerName")
        return v

    @field_validator("customerPhone")
    @classmethod
    def validate_customer_phone(cls, v):
        if v:
            return validate_phone(v)
        return v

    @field_validator("customerEmail")
    @classmethod
    def validate_customer_email(cls, v):
        if v:
            return validate_email(v)
        return v


class AppointmentResponse(BaseModel):
    id: str
    employeeId: str
    date: datetime.date
    startHour: int
    startMinute: int
    durationMinutes: int
    customerName: str
    customerPhone: Optional[str] = None
    customerEmail: Optional[str] = None
    serviceId: Optional[str] = None
    title: Optional[str] = None
    # Referenced employee was deleted; the appointment is kept
    employeeMissing: bool = False
    createdAt: Optional[datetime.datetime] = None
    updatedAt: Optional[datetime.datetime] = None


# ============================================================================
# SETTINGS
# ============================================================================


class SettingsUpdate(BaseModel):
    """Complete settings document; replaces the stored one"""

    calendarName: str
    dailyHours: dict[str, DailyHoursSchema]
    services: list[ServiceSchema] = Field(default_factory=list)
    holidays: list[HolidaySchema] = Field(default_factory=list)

    @field_validator("calendarName")
    @classmethod
    def validate_calendar_name(cls, v):
        return validate_not_blank(v, "calendarName")

    @field_validator("dailyHours")
    @classmethod
    def validate_daily_hours(cls, v):
        return _check_weekdays(v)


class SettingsResponse(BaseModel):
    calendarName: str
    dailyHours: dict[str, DailyHoursSchema]
    services: list[ServiceSchema]
    holidays: list[HolidaySchema]
