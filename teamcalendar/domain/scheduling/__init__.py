"""
Scheduling Domain

Employees, appointments and the calendar settings document, plus the engine
that decides whether an appointment may be booked.

Layout:
- entities.py      Domain model (Employee, Appointment, CalendarSettings, Service)
- availability.py  Effective working hours: holiday > employee weekday > calendar weekday
- engine.py        evaluate(): the single admission check for create and update
- errors.py        Error taxonomy mapped to HTTP status codes in main.py
- locks.py         Per-(employee, date) serialization, in-process or Redis
- repository.py    Database operations (no commits)
- service.py       Unit of work: lock -> read -> evaluate -> persist -> commit
- schemas.py       Request/response models used by the front end
- router.py        FastAPI endpoints

Endpoints (mounted under API_PREFIX, default /api):
- GET/POST /employees, GET/PUT/DELETE /employees/{id}
- GET /employees/{id}/availability?date=YYYY-MM-DD
- GET/POST /appointments (GET filters: employeeId, date)
- GET/PUT/DELETE /appointments/{id}
- GET/POST /settings
"""
