import os

# Must be set before teamcalendar.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOCK_BACKEND"] = "memory"
os.environ["LOCK_TIMEOUT_SECONDS"] = "1"
os.environ["STATIC_DIR"] = os.path.join(os.path.dirname(__file__), "no-frontend")
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from datetime import date  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from teamcalendar.database import Base, SessionLocal, engine  # noqa: E402
from teamcalendar.domain.scheduling.entities import (  # noqa: E402
    Appointment,
    DailyHours,
    Employee,
    default_settings,
)
from teamcalendar.main import app  # noqa: E402

# 2024-06-03 is a Monday
MONDAY = date(2024, 6, 3)
SUNDAY = date(2024, 6, 2)


@pytest.fixture(autouse=True)
def fresh_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def settings():
    return default_settings()


@pytest.fixture
def employee():
    """Works Monday 09:00-17:00, no holidays"""
    return Employee(
        id="emp-1",
        first_name="Lisa",
        color="#1e90ff",
        daily_hours={"Mo": DailyHours(enabled=True, start=9, end=17)},
    )


def make_appointment(start_hour, start_minute, duration, id=None, employee_id="emp-1", day=MONDAY):
    return Appointment(
        id=id,
        employee_id=employee_id,
        date=day,
        start_hour=start_hour,
        start_minute=start_minute,
        duration_minutes=duration,
        customer_name="Max Mustermann",
    )
