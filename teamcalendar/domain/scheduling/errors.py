"""
Scheduling error taxonomy.

Every rejection raised by the scheduling domain is a SchedulingError whose
`kind` and `status_code` let the API layer map it to a response without
inspecting the message.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    kind = "SchedulingError"
    status_code = 400
    retryable = False

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict:
        body = {"detail": self.message, "kind": self.kind}
        body.update(self.extra)
        if self.retryable:
            body["retryable"] = True
        return body


class UnknownEmployee(SchedulingError):
    kind = "UnknownEmployee"


class InvalidTimeRange(SchedulingError):
    kind = "InvalidTimeRange"


class EmployeeUnavailable(SchedulingError):
    kind = "EmployeeUnavailable"


class OutsideWorkingHours(SchedulingError):
    kind = "OutsideWorkingHours"


class ConflictingAppointment(SchedulingError):
    kind = "ConflictingAppointment"
    status_code = 409

    def __init__(self, message: str, conflicting_id: Optional[str]):
        super().__init__(message, conflictingAppointmentId=conflicting_id)
        self.conflicting_id = conflicting_id


class NotFound(SchedulingError):
    kind = "NotFound"
    status_code = 404


class StorageUnavailable(SchedulingError):
    kind = "StorageUnavailable"
    status_code = 500


class LockTimeout(SchedulingError):
    """Another request holds the (employee, date) slot; the client may retry"""

    kind = "LockTimeout"
    status_code = 503
    retryable = True


class InvalidInput(SchedulingError):
    """Record shape is invalid (e.g. merged update fails field validation)"""

    kind = "InvalidInput"
