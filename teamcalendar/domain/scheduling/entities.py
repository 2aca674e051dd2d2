"""Scheduling domain entities - Employee, Appointment, CalendarSettings"""

import datetime
from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.validators import (
    WEEKDAY_KEYS,
    validate_hex_color,
    validate_not_blank,
    validate_weekday_key,
)

MINUTES_PER_DAY = 24 * 60


class DailyHours(BaseModel):
    """Working interval for one weekday, in whole hours"""

    enabled: bool = False
    start: int = 9
    end: int = 18

    @model_validator(mode="after")
    def check_range(self):
        if not 0 <= self.start <= 23:
            raise ValueError("start hour must be between 0 and 23")
        if not 1 <= self.end <= 24:
            raise ValueError("end hour must be between 1 and 24")
        if self.enabled and self.start >= self.end:
            raise ValueError("start hour must be before end hour")
        return self

    @property
    def start_minutes(self) -> int:
        return self.start * 60

    @property
    def end_minutes(self) -> int:
        return self.end * 60


class Holiday(BaseModel):
    """Inclusive date range during which nobody (or one employee) works"""

    start: date
    end: date

    @model_validator(mode="after")
    def check_order(self):
        if self.start > self.end:
            raise ValueError("holiday start must not be after its end")
        return self

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class Service(BaseModel):
    id: str
    name: str
    duration_minutes: int = Field(gt=0)


def _check_weekday_keys(hours: dict) -> dict:
    for key in hours:
        validate_weekday_key(key)
    return hours


class Employee(BaseModel):
    id: Optional[str] = None
    first_name: str
    color: str
    # Partial: weekdays without an entry use the calendar default
    daily_hours: dict[str, DailyHours] = Field(default_factory=dict)
    holidays: list[Holiday] = Field(default_factory=list)

    @field_validator("first_name")
    @classmethod
    def check_name(cls, v):
        return validate_not_blank(v, "firstName")

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return validate_hex_color(v)

    @field_validator("daily_hours")
    @classmethod
    def check_weekdays(cls, v):
        return _check_weekday_keys(v)


class CalendarSettings(BaseModel):
    calendar_name: str
    daily_hours: dict[str, DailyHours]
    holidays: list[Holiday] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)

    @field_validator("daily_hours")
    @classmethod
    def fill_weekdays(cls, v):
        _check_weekday_keys(v)
        # Wholesale replace: weekdays left out of the document are closed
        return {key: v.get(key, DailyHours(enabled=False)) for key in WEEKDAY_KEYS}

    def find_service(self, service_id: Optional[str]) -> Optional[Service]:
        if not service_id:
            return None
        return next((s for s in self.services if s.id == service_id), None)


class Appointment(BaseModel):
    id: Optional[str] = None
    employee_id: str
    date: datetime.date
    start_hour: int
    start_minute: int
    duration_minutes: int
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    service_id: Optional[str] = None
    title: Optional[str] = None

    @property
    def start_minutes(self) -> int:
        return self.start_hour * 60 + self.start_minute

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration_minutes


def default_settings() -> CalendarSettings:
    """Settings document created on first access"""
    closed = {"So", "Sa"}
    return CalendarSettings(
        calendar_name="Team-Planungsübersicht",
        daily_hours={
            key: DailyHours(enabled=key not in closed, start=9, end=18) for key in WEEKDAY_KEYS
        },
        services=[
            Service(id="default-1", name="Herrenhaarschnitt", duration_minutes=30),
            Service(id="default-2", name="Damen-Coloration", duration_minutes=120),
        ],
        holidays=[],
    )
