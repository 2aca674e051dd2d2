"""Scheduling repository - Database operations for employees, appointments and settings

Repositories never commit; the service owns the transaction so that
evaluate-then-persist either fully succeeds or leaves the prior state.
"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import SETTINGS_KEY, Appointment, CalendarSettings, Employee


class EmployeeRepository:
    """Repository for employee database operations"""

    @staticmethod
    def list_employees(db: Session) -> list[Employee]:
        """All employees in creation order"""
        return db.query(Employee).order_by(Employee.created_at.asc(), Employee.id.asc()).all()

    @staticmethod
    def get_employee(db: Session, employee_id: str) -> Optional[Employee]:
        return db.query(Employee).filter(Employee.id == employee_id).first()

    @staticmethod
    def employee_ids(db: Session) -> set[str]:
        return {row[0] for row in db.query(Employee.id).all()}

    @staticmethod
    def create_employee(db: Session, **employee_data) -> Employee:
        employee = Employee(**employee_data)
        db.add(employee)
        db.flush()
        return employee

    @staticmethod
    def update_employee(db: Session, employee: Employee, **updates) -> Employee:
        """Update an employee with provided fields"""
        for key, value in updates.items():
            if value is not None and hasattr(employee, key):
                setattr(employee, key, value)
        db.flush()
        return employee

    @staticmethod
    def delete_employee(db: Session, employee: Employee) -> None:
        db.delete(employee)
        db.flush()


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def list_appointments(
        db: Session,
        employee_id: Optional[str] = None,
        date: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments, optionally filtered by employee and/or date"""
        query = db.query(Appointment)

        if employee_id:
            query = query.filter(Appointment.employee_id == employee_id)
        if date:
            query = query.filter(Appointment.date == date)

        return query.order_by(
            Appointment.date.asc(),
            Appointment.start_hour.asc(),
            Appointment.start_minute.asc(),
            Appointment.id.asc(),
        ).all()

    @staticmethod
    def list_by_employee_and_date(db: Session, employee_id: str, date: str) -> list[Appointment]:
        """Every appointment of one employee on one date; never paginated"""
        return (
            db.query(Appointment)
            .filter(Appointment.employee_id == employee_id, Appointment.date == date)
            .all()
        )

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def create_appointment(db: Session, **appointment_data) -> Appointment:
        appointment = Appointment(**appointment_data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        """Overwrite fields; None clears optional fields"""
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)
        db.flush()
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.flush()


class SettingsRepository:
    """Repository for the calendar settings document"""

    @staticmethod
    def get_singleton(db: Session) -> Optional[CalendarSettings]:
        return db.query(CalendarSettings).filter(CalendarSettings.key == SETTINGS_KEY).first()

    @staticmethod
    def upsert_singleton(db: Session, **settings_data) -> CalendarSettings:
        """Replace the settings document, creating it if missing"""
        settings = SettingsRepository.get_singleton(db)
        if settings is None:
            settings = CalendarSettings(key=SETTINGS_KEY, **settings_data)
            db.add(settings)
        else:
            for key, value in settings_data.items():
                setattr(settings, key, value)
        db.flush()
        return settings
