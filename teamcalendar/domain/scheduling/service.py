"""Scheduling service - Business logic for employees, appointments and settings

Every appointment create/update runs as one unit of work:

    lock (employee, date) -> read employee/settings/day -> evaluate -> persist -> commit

The commit happens while the lock is held, so two requests for the same
employee and date can never both pass the conflict check on the same snapshot.
"""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ... import models
from .availability import effective_hours, holiday_source
from .engine import evaluate
from .entities import Appointment, CalendarSettings, DailyHours, Employee, default_settings
from .errors import InvalidInput, LockTimeout, NotFound, SchedulingError, StorageUnavailable
from .locks import get_lock_manager, lock_key
from .repository import AppointmentRepository, EmployeeRepository, SettingsRepository
from .schemas import (
    AppointmentCreate,
    AppointmentUpdate,
    EmployeeCreate,
    EmployeeUpdate,
    SettingsUpdate,
)

logger = logging.getLogger(__name__)

# Attempts to pin an appointment whose (employee, date) moved while we waited
MAX_RELOCK_ATTEMPTS = 3


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'value'}: {e['msg']}" for e in error.errors()
    )


# ============================================================================
# ROW <-> ENTITY CONVERSION
# ============================================================================


def employee_entity(row: Optional[models.Employee]) -> Optional[Employee]:
    if row is None:
        return None
    return Employee(
        id=row.id,
        first_name=row.first_name,
        color=row.color,
        daily_hours=row.daily_hours or {},
        holidays=row.holidays or [],
    )


def appointment_entity(row: models.Appointment) -> Appointment:
    return Appointment(
        id=row.id,
        employee_id=row.employee_id,
        date=row.date,
        start_hour=row.start_hour,
        start_minute=row.start_minute,
        duration_minutes=row.duration_minutes,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        customer_email=row.customer_email,
        service_id=row.service_id,
        title=row.title,
    )


def settings_entity(row: models.CalendarSettings) -> CalendarSettings:
    return CalendarSettings(
        calendar_name=row.calendar_name,
        daily_hours=row.daily_hours,
        holidays=row.holidays or [],
        services=row.services or [],
    )


def _hours_document(hours: dict[str, DailyHours]) -> dict:
    return {key: value.model_dump() for key, value in hours.items()}


def _holidays_document(holidays) -> list:
    return [h.model_dump(mode="json") for h in holidays]


def _settings_document(settings: CalendarSettings) -> dict:
    return {
        "calendar_name": settings.calendar_name,
        "daily_hours": _hours_document(settings.daily_hours),
        "holidays": _holidays_document(settings.holidays),
        "services": [s.model_dump() for s in settings.services],
    }


def _appointment_columns(appointment: Appointment) -> dict:
    return {
        "employee_id": appointment.employee_id,
        "date": appointment.date.isoformat(),
        "start_hour": appointment.start_hour,
        "start_minute": appointment.start_minute,
        "duration_minutes": appointment.duration_minutes,
        "customer_name": appointment.customer_name,
        "customer_phone": appointment.customer_phone,
        "customer_email": appointment.customer_email,
        "service_id": appointment.service_id,
        "title": appointment.title,
    }


class SchedulingService:
    """Service layer for calendar business logic"""

    def __init__(self, db: Session, locks=None):
        self.db = db
        self.locks = locks or get_lock_manager()
        self.employees = EmployeeRepository()
        self.appointments = AppointmentRepository()
        self.settings_repo = SettingsRepository()

    # ------------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------------

    @contextmanager
    def _transaction(self) -> Iterator[None]:
        """Commit on success; roll back on any rejection or storage failure."""
        try:
            yield
            self.db.commit()
        except SchedulingError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Storage failure, transaction rolled back: {e}")
            raise StorageUnavailable("Storage is unavailable, nothing was saved") from e

    @contextmanager
    def _reading(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Storage failure while reading: {e}")
            raise StorageUnavailable("Storage is unavailable") from e

    # ------------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------------

    def get_settings(self) -> CalendarSettings:
        """Settings document, created with defaults on first access"""
        with self._reading():
            row = self.settings_repo.get_singleton(self.db)
        if row is not None:
            return settings_entity(row)

        logger.info("⚙️ No settings found, creating defaults")
        settings = default_settings()
        try:
            with self._transaction():
                self.settings_repo.upsert_singleton(self.db, **_settings_document(settings))
        except StorageUnavailable as e:
            # Another request created the document first
            if not isinstance(e.__cause__, IntegrityError):
                raise
            with self._reading():
                row = self.settings_repo.get_singleton(self.db)
            if row is None:
                raise
            return settings_entity(row)
        return settings

    def update_settings(self, data: SettingsUpdate) -> CalendarSettings:
        """Replace the whole settings document"""
        try:
            settings = CalendarSettings(
                calendar_name=data.calendarName,
                daily_hours={k: v.model_dump() for k, v in data.dailyHours.items()},
                holidays=[h.model_dump() for h in data.holidays],
                services=[
                    {"id": s.id, "name": s.name, "duration_minutes": s.durationMinutes}
                    for s in data.services
                ],
            )
        except ValidationError as e:
            raise InvalidInput(_validation_message(e)) from e

        with self._transaction():
            self.settings_repo.upsert_singleton(self.db, **_settings_document(settings))
        logger.info(f"⚙️ Settings replaced (calendar '{settings.calendar_name}')")
        return settings

    # ------------------------------------------------------------------------
    # Employees
    # ------------------------------------------------------------------------

    def list_employees(self) -> list[models.Employee]:
        with self._reading():
            return self.employees.list_employees(self.db)

    def get_employee(self, employee_id: str) -> models.Employee:
        with self._reading():
            employee = self.employees.get_employee(self.db, employee_id)
        if not employee:
            raise NotFound(f"Employee {employee_id} not found", employeeId=employee_id)
        return employee

    def create_employee(self, data: EmployeeCreate) -> models.Employee:
        try:
            employee = Employee(
                first_name=data.firstName,
                color=data.color,
                daily_hours={k: v.model_dump() for k, v in data.dailyHours.items()},
                holidays=[h.model_dump() for h in data.holidays],
            )
        except ValidationError as e:
            raise InvalidInput(_validation_message(e)) from e

        with self._transaction():
            row = self.employees.create_employee(
                self.db,
                first_name=employee.first_name,
                color=employee.color,
                daily_hours=_hours_document(employee.daily_hours),
                holidays=_holidays_document(employee.holidays),
            )
        logger.info(f"👤 Created employee {row.id} ({employee.first_name})")
        return row

    def update_employee(self, employee_id: str, data: EmployeeUpdate) -> models.Employee:
        """Partial update; provided fields replace the stored ones"""
        row = self.get_employee(employee_id)
        current = employee_entity(row)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        try:
            merged = Employee(
                id=row.id,
                first_name=changes.get("firstName", current.first_name),
                color=changes.get("color", current.color),
                daily_hours=changes.get("dailyHours", _hours_document(current.daily_hours)),
                holidays=changes.get("holidays", _holidays_document(current.holidays)),
            )
        except ValidationError as e:
            raise InvalidInput(_validation_message(e)) from e

        with self._transaction():
            row = self.employees.update_employee(
                self.db,
                row,
                first_name=merged.first_name,
                color=merged.color,
                daily_hours=_hours_document(merged.daily_hours),
                holidays=_holidays_document(merged.holidays),
            )
        logger.info(f"👤 Updated employee {employee_id}: {sorted(changes)}")
        return row

    def delete_employee(self, employee_id: str) -> None:
        """Delete an employee; their appointments stay and become orphaned"""
        row = self.get_employee(employee_id)
        with self._transaction():
            self.employees.delete_employee(self.db, row)
        with self._reading():
            orphaned = len(self.appointments.list_appointments(self.db, employee_id=employee_id))
        logger.info(f"🗑️ Deleted employee {employee_id} ({orphaned} appointment(s) kept as orphans)")

    def employee_availability(self, employee_id: str, day: date) -> dict:
        """Effective working interval of an employee on a date"""
        employee = employee_entity(self.get_employee(employee_id))
        settings = self.get_settings()

        hours = effective_hours(employee, settings, day)
        if hours is not None:
            return {"available": True, "start": hours.start, "end": hours.end}

        source = holiday_source(employee, settings, day)
        if source is not None:
            return {"available": False, "reason": "holiday", "holiday": source}
        return {"available": False, "reason": "closed"}

    # ------------------------------------------------------------------------
    # Appointments
    # ------------------------------------------------------------------------

    def list_appointments(
        self, employee_id: Optional[str] = None, day: Optional[date] = None
    ) -> list[tuple[models.Appointment, bool]]:
        """Appointments with a flag telling whether their employee is gone"""
        with self._reading():
            rows = self.appointments.list_appointments(
                self.db, employee_id=employee_id, date=day.isoformat() if day else None
            )
            known = self.employees.employee_ids(self.db)
        return [(row, row.employee_id not in known) for row in rows]

    def get_appointment(self, appointment_id: str) -> models.Appointment:
        with self._reading():
            appointment = self.appointments.get_appointment(self.db, appointment_id)
        if not appointment:
            raise NotFound(f"Appointment {appointment_id} not found", appointmentId=appointment_id)
        return appointment

    def is_orphaned(self, appointment: models.Appointment) -> bool:
        with self._reading():
            return self.employees.get_employee(self.db, appointment.employee_id) is None

    def create_appointment(self, data: AppointmentCreate) -> models.Appointment:
        with self.locks.hold([lock_key(data.employeeId, data.date)]):
            # Settings are read under the lock so a holiday committed meanwhile is seen
            self.db.expire_all()
            settings = self.get_settings()

            duration = data.durationMinutes
            if duration is None:
                service = settings.find_service(data.serviceId)
                if service is None:
                    raise InvalidInput(
                        "durationMinutes is required unless serviceId names a configured service"
                    )
                duration = service.duration_minutes

            proposed = Appointment(
                employee_id=data.employeeId,
                date=data.date,
                start_hour=data.startHour,
                start_minute=data.startMinute,
                duration_minutes=duration,
                customer_name=data.customerName,
                customer_phone=data.customerPhone,
                customer_email=data.customerEmail,
                service_id=data.serviceId,
                title=data.title or data.customerName,
            )

            with self._transaction():
                self._evaluate(proposed, settings)
                row = self.appointments.create_appointment(
                    self.db, **_appointment_columns(proposed)
                )

        logger.info(
            f"📅 Created appointment {row.id} for employee {row.employee_id} on {row.date} "
            f"{row.start_hour:02d}:{row.start_minute:02d} ({row.duration_minutes} min)"
        )
        return row

    def update_appointment(self, appointment_id: str, data: AppointmentUpdate) -> models.Appointment:
        """Apply provided fields and re-validate the whole appointment"""
        changes = data.model_dump(exclude_unset=True)

        for _ in range(MAX_RELOCK_ATTEMPTS):
            row = self.get_appointment(appointment_id)
            keys = {lock_key(row.employee_id, row.date)}
            target = lock_key(
                changes.get("employeeId") or row.employee_id,
                (changes.get("date") or date.fromisoformat(row.date)).isoformat(),
            )
            keys.add(target)

            with self.locks.hold(keys):
                # Drop anything read before the lock was taken
                self.db.expire_all()
                row = self.get_appointment(appointment_id)
                if lock_key(row.employee_id, row.date) not in keys:
                    # Moved by a concurrent update while we waited
                    continue

                settings = self.get_settings()
                proposed = self._merge(row, changes)
                with self._transaction():
                    self._evaluate(proposed, settings, excluding_id=row.id)
                    row = self.appointments.update_appointment(
                        self.db, row, **_appointment_columns(proposed)
                    )

            logger.info(f"📅 Updated appointment {appointment_id}: {sorted(changes)}")
            return row

        raise LockTimeout(
            "Appointment kept changing while waiting, please retry", appointmentId=appointment_id
        )

    def delete_appointment(self, appointment_id: str) -> None:
        row = self.get_appointment(appointment_id)
        with self._transaction():
            self.appointments.delete_appointment(self.db, row)
        logger.info(f"🗑️ Deleted appointment {appointment_id}")

    def _merge(self, row: models.Appointment, changes: dict) -> Appointment:
        current = appointment_entity(row)
        fields = {
            "employee_id": changes.get("employeeId") or current.employee_id,
            "date": changes.get("date") or current.date,
            "start_hour": current.start_hour,
            "start_minute": current.start_minute,
            "duration_minutes": current.duration_minutes,
            "customer_name": changes.get("customerName") or current.customer_name,
        }
        for key, attr in (
            ("startHour", "start_hour"),
            ("startMinute", "start_minute"),
            ("durationMinutes", "duration_minutes"),
        ):
            if changes.get(key) is not None:
                fields[attr] = changes[key]
        # Optional fields may be cleared with an explicit null
        for key, attr in (
            ("customerPhone", "customer_phone"),
            ("customerEmail", "customer_email"),
            ("serviceId", "service_id"),
            ("title", "title"),
        ):
            fields[attr] = changes[key] if key in changes else getattr(current, attr)

        if not fields["title"]:
            fields["title"] = fields["customer_name"]
        return Appointment(id=row.id, **fields)

    def _evaluate(
        self,
        proposed: Appointment,
        settings: CalendarSettings,
        excluding_id: Optional[str] = None,
    ) -> Appointment:
        """Fetch current state of the (employee, date) and run the engine"""
        employee = employee_entity(self.employees.get_employee(self.db, proposed.employee_id))
        existing = [
            appointment_entity(a)
            for a in self.appointments.list_by_employee_and_date(
                self.db, proposed.employee_id, proposed.date.isoformat()
            )
        ]
        try:
            return evaluate(proposed, existing, employee, settings, excluding_id=excluding_id)
        except SchedulingError as e:
            logger.warning(f"⚠️ Appointment rejected ({e.kind}): {e.message}")
            raise
