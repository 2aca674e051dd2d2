import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from .database import Base

SETTINGS_KEY = "default"


def generate_id():
    """Generate an opaque record identifier"""
    return uuid.uuid4().hex


def utcnow():
    """Naive UTC timestamp with microseconds, so creation order is stable"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Employee(Base):
    __tablename__ = "employees"

    id = Column(String(32), primary_key=True, default=generate_id)
    first_name = Column(String(255), nullable=False)
    color = Column(String(7), nullable=False)  # #RGB or #RRGGBB
    daily_hours = Column(JSON, nullable=False, default=dict)  # {"Mo": {"enabled", "start", "end"}}
    holidays = Column(JSON, nullable=False, default=list)  # [{"start": "YYYY-MM-DD", "end": ...}]

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_employee_date", "employee_id", "date"),)

    id = Column(String(32), primary_key=True, default=generate_id)
    # No foreign key: appointments outlive a deleted employee
    employee_id = Column(String(32), nullable=False)
    date = Column(String(10), nullable=False)  # YYYY-MM-DD
    start_hour = Column(Integer, nullable=False)
    start_minute = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    customer_email = Column(String(255), nullable=True)
    service_id = Column(String(100), nullable=True)
    title = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class CalendarSettings(Base):
    """Single settings document, stored under SETTINGS_KEY"""

    __tablename__ = "calendar_settings"

    key = Column(String(32), primary_key=True, default=SETTINGS_KEY)
    calendar_name = Column(String(255), nullable=False)
    daily_hours = Column(JSON, nullable=False)
    services = Column(JSON, nullable=False, default=list)
    holidays = Column(JSON, nullable=False, default=list)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
