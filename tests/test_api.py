"""End-to-end tests for the /api endpoints"""

import logging
from unittest.mock import MagicMock

import pytest
import redis
from fastapi import Depends
from sqlalchemy.exc import OperationalError

from teamcalendar.database import get_db
from teamcalendar.domain.scheduling.locks import KeyedLockManager, RedisLockManager, lock_key
from teamcalendar.domain.scheduling.repository import AppointmentRepository
from teamcalendar.domain.scheduling.router import get_scheduling_service
from teamcalendar.domain.scheduling.service import SchedulingService
from teamcalendar.main import app


@pytest.fixture
def lisa(client):
    response = client.post(
        "/api/employees",
        json={
            "firstName": "Lisa",
            "color": "#1e90ff",
            "dailyHours": {"Mo": {"enabled": True, "start": 9, "end": 17}},
        },
    )
    assert response.status_code == 201
    return response.json()


def booking(employee_id, hour=10, minute=0, duration=60, **extra):
    body = {
        "employeeId": employee_id,
        "date": "2024-06-03",
        "startHour": hour,
        "startMinute": minute,
        "durationMinutes": duration,
        "customerName": "Max Mustermann",
    }
    body.update(extra)
    return body


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


class TestSettingsEndpoints:
    def test_defaults_on_first_read(self, client):
        response = client.get("/api/settings")

        assert response.status_code == 200
        data = response.json()
        assert data["calendarName"] == "Team-Planungsübersicht"
        assert data["dailyHours"]["Mo"] == {"enabled": True, "start": 9, "end": 18}
        assert data["dailyHours"]["So"]["enabled"] is False
        assert [s["durationMinutes"] for s in data["services"]] == [30, 120]

    def test_replace(self, client):
        response = client.post(
            "/api/settings",
            json={
                "calendarName": "Salon Nord",
                "dailyHours": {"Sa": {"enabled": True, "start": 10, "end": 14}},
                "holidays": [{"start": "2024-12-24", "end": "2024-12-26"}],
            },
        )

        assert response.status_code == 200
        data = client.get("/api/settings").json()
        assert data["calendarName"] == "Salon Nord"
        assert data["dailyHours"]["Mo"]["enabled"] is False
        assert data["services"] == []
        assert data["holidays"] == [{"start": "2024-12-24", "end": "2024-12-26"}]

    def test_invalid_hours(self, client):
        response = client.post(
            "/api/settings",
            json={"calendarName": "Salon", "dailyHours": {"Mo": {"enabled": True, "start": 18, "end": 9}}},
        )

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidInput"

    def test_unknown_weekday(self, client):
        response = client.post(
            "/api/settings",
            json={"calendarName": "Salon", "dailyHours": {"Monday": {"enabled": True}}},
        )
        assert response.status_code == 400


class TestEmployeeEndpoints:
    def test_create_and_list(self, client, lisa):
        assert lisa["firstName"] == "Lisa"
        assert lisa["holidays"] == []

        client.post("/api/employees", json={"firstName": "Tom", "color": "#ABC"})
        names = [e["firstName"] for e in client.get("/api/employees").json()]
        assert names == ["Lisa", "Tom"]

    def test_missing_color(self, client):
        response = client.post("/api/employees", json={"firstName": "Tom"})
        assert response.status_code == 400

    def test_invalid_color(self, client):
        response = client.post("/api/employees", json={"firstName": "Tom", "color": "blue"})
        assert response.status_code == 400

    def test_get_one(self, client, lisa):
        response = client.get(f"/api/employees/{lisa['id']}")
        assert response.status_code == 200
        assert response.json()["dailyHours"]["Mo"]["end"] == 17

    def test_update(self, client, lisa):
        response = client.put(
            f"/api/employees/{lisa['id']}",
            json={"holidays": [{"start": "2024-06-03", "end": "2024-06-07"}]},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["firstName"] == "Lisa"
        assert data["holidays"] == [{"start": "2024-06-03", "end": "2024-06-07"}]

    def test_update_unknown(self, client):
        response = client.put("/api/employees/missing", json={"firstName": "X"})

        assert response.status_code == 404
        assert response.json()["kind"] == "NotFound"

    def test_delete(self, client, lisa):
        assert client.delete(f"/api/employees/{lisa['id']}").status_code == 204
        assert client.get(f"/api/employees/{lisa['id']}").status_code == 404
        assert client.delete(f"/api/employees/{lisa['id']}").status_code == 404

    def test_availability(self, client, lisa):
        monday = client.get(f"/api/employees/{lisa['id']}/availability", params={"date": "2024-06-03"})
        sunday = client.get(f"/api/employees/{lisa['id']}/availability", params={"date": "2024-06-02"})

        assert monday.json()["available"] is True
        assert (monday.json()["start"], monday.json()["end"]) == (9, 17)
        assert sunday.json()["available"] is False
        assert sunday.json()["reason"] == "closed"

    def test_availability_needs_a_date(self, client, lisa):
        response = client.get(f"/api/employees/{lisa['id']}/availability")
        assert response.status_code == 400


class TestAppointmentEndpoints:
    def test_create(self, client, lisa):
        response = client.post("/api/appointments", json=booking(lisa["id"]))

        assert response.status_code == 201
        data = response.json()
        assert data["date"] == "2024-06-03"
        assert data["title"] == "Max Mustermann"
        assert data["employeeMissing"] is False

    def test_conflict(self, client, lisa):
        first = client.post("/api/appointments", json=booking(lisa["id"], hour=10)).json()

        response = client.post("/api/appointments", json=booking(lisa["id"], hour=10, minute=30))

        assert response.status_code == 409
        assert response.json()["kind"] == "ConflictingAppointment"
        assert response.json()["conflictingAppointmentId"] == first["id"]
        assert len(client.get("/api/appointments").json()) == 1

    def test_outside_working_hours(self, client, lisa):
        response = client.post("/api/appointments", json=booking(lisa["id"], hour=16, minute=30))

        assert response.status_code == 400
        assert response.json()["kind"] == "OutsideWorkingHours"

    def test_employee_holiday(self, client, lisa):
        client.put(
            f"/api/employees/{lisa['id']}",
            json={"holidays": [{"start": "2024-06-01", "end": "2024-06-05"}]},
        )

        response = client.post("/api/appointments", json=booking(lisa["id"]))

        assert response.status_code == 400
        assert response.json()["kind"] == "EmployeeUnavailable"
        assert response.json()["reason"] == "holiday"

    def test_unknown_employee(self, client):
        response = client.post("/api/appointments", json=booking("nobody"))

        assert response.status_code == 400
        assert response.json()["kind"] == "UnknownEmployee"

    def test_zero_duration(self, client, lisa):
        response = client.post("/api/appointments", json=booking(lisa["id"], duration=0))

        assert response.status_code == 400
        assert response.json()["kind"] == "InvalidTimeRange"

    def test_malformed_date(self, client, lisa):
        response = client.post("/api/appointments", json=booking(lisa["id"], date="03.06.2024"))
        assert response.status_code == 400

    def test_filters(self, client, lisa):
        tom = client.post("/api/employees", json={"firstName": "Tom", "color": "#00ff00"}).json()
        client.post("/api/appointments", json=booking(lisa["id"]))
        client.post("/api/appointments", json=booking(tom["id"]))
        client.post("/api/appointments", json=booking(lisa["id"], date="2024-06-04"))

        by_employee = client.get("/api/appointments", params={"employeeId": lisa["id"]}).json()
        by_both = client.get(
            "/api/appointments", params={"employeeId": lisa["id"], "date": "2024-06-03"}
        ).json()

        assert len(by_employee) == 2
        assert len(by_both) == 1
        assert by_both[0]["employeeId"] == lisa["id"]

    def test_bad_date_filter(self, client):
        response = client.get("/api/appointments", params={"date": "tomorrow"})
        assert response.status_code == 400

    def test_move_within_own_slot(self, client, lisa):
        created = client.post("/api/appointments", json=booking(lisa["id"])).json()

        response = client.put(f"/api/appointments/{created['id']}", json={"startMinute": 15})

        assert response.status_code == 200
        assert response.json()["startMinute"] == 15
        assert response.json()["customerName"] == "Max Mustermann"

    def test_move_onto_other_appointment(self, client, lisa):
        client.post("/api/appointments", json=booking(lisa["id"], hour=10))
        other = client.post("/api/appointments", json=booking(lisa["id"], hour=12)).json()

        response = client.put(f"/api/appointments/{other['id']}", json={"startHour": 10})
        assert response.status_code == 409

    def test_delete(self, client, lisa):
        created = client.post("/api/appointments", json=booking(lisa["id"])).json()

        assert client.delete(f"/api/appointments/{created['id']}").status_code == 204
        assert client.delete(f"/api/appointments/{created['id']}").status_code == 404
        assert client.get(f"/api/appointments/{created['id']}").status_code == 404

    def test_orphan_after_employee_delete(self, client, lisa):
        created = client.post("/api/appointments", json=booking(lisa["id"])).json()
        client.delete(f"/api/employees/{lisa['id']}")

        listed = client.get("/api/appointments").json()
        single = client.get(f"/api/appointments/{created['id']}").json()

        assert listed[0]["employeeMissing"] is True
        assert single["employeeMissing"] is True

    def test_duration_from_service(self, client, lisa):
        body = booking(lisa["id"], serviceId="default-1")
        del body["durationMinutes"]

        response = client.post("/api/appointments", json=body)

        assert response.status_code == 201
        assert response.json()["durationMinutes"] == 30


class TestFailureModes:
    def test_storage_failure_is_500_and_saves_nothing(self, client, lisa, monkeypatch):
        def broken_create(session, **data):
            raise OperationalError("INSERT", {}, Exception("database is locked"))

        monkeypatch.setattr(AppointmentRepository, "create_appointment", staticmethod(broken_create))

        response = client.post("/api/appointments", json=booking(lisa["id"]))

        assert response.status_code == 500
        assert response.json()["kind"] == "StorageUnavailable"
        monkeypatch.undo()
        assert client.get("/api/appointments").json() == []

    def test_lock_timeout_is_retryable(self, client, lisa):
        locks = KeyedLockManager(timeout=0.05)

        def impatient_service(db=Depends(get_db)):
            return SchedulingService(db, locks=locks)

        app.dependency_overrides[get_scheduling_service] = impatient_service

        with locks.hold([lock_key(lisa["id"], "2024-06-03")]):
            response = client.post("/api/appointments", json=booking(lisa["id"]))

        assert response.status_code == 503
        assert response.json()["kind"] == "LockTimeout"
        assert response.json()["retryable"] is True
        assert response.headers["Retry-After"] == "1"

        # Other employees and days are unaffected
        retry = client.post("/api/appointments", json=booking(lisa["id"], date="2024-06-04"))
        assert retry.status_code == 201

    def test_lock_backend_outage_is_500(self, client, lisa):
        redis_client = MagicMock()
        redis_client.lock.return_value.acquire.side_effect = redis.exceptions.ConnectionError("down")
        locks = RedisLockManager(redis_client, timeout=0.05, lease=10)

        def redis_backed_service(db=Depends(get_db)):
            return SchedulingService(db, locks=locks)

        app.dependency_overrides[get_scheduling_service] = redis_backed_service

        response = client.post("/api/appointments", json=booking(lisa["id"]))

        assert response.status_code == 500
        assert response.json()["kind"] == "StorageUnavailable"
        assert client.get("/api/appointments").json() == []


def test_requests_are_logged(client, caplog):
    with caplog.at_level(logging.INFO, logger="teamcalendar.main"):
        client.get("/api/appointments/missing")

    assert "GET /api/appointments/missing - 404" in caplog.text
