"""Scheduling domain errors

Every failure of the availability resolver and booking assigner surfaces to
the caller as one of these types. The HTTP layer maps them to responses via
``status_code`` and ``code``; nothing here is retried internally.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for scheduling failures"""

    status_code = 500
    code = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class ValidationError(SchedulingError):
    """Malformed or out-of-range input. Carries the offending field."""

    status_code = 422
    code = "validation_error"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        payload = super().to_dict()
        if self.field:
            payload["errors"] = {self.field: [self.message]}
        return payload


class NotFound(SchedulingError):
    status_code = 404
    code = "not_found"


class ServiceNotFound(NotFound):
    def __init__(self, service_id: str):
        super().__init__(f"Service {service_id} not found or inactive")
        self.service_id = service_id


class BookingNotFound(NotFound):
    def __init__(self, booking_id: str):
        super().__init__(f"Booking {booking_id} not found")
        self.booking_id = booking_id


class DetailerNotFound(NotFound):
    pass


class NoAvailability(SchedulingError):
    """No detailer works at the requested time"""

    status_code = 409
    code = "no_availability"


class SlotConflict(SchedulingError):
    """The slot overlaps an existing booking; re-resolve availability and retry"""

    status_code = 409
    code = "slot_conflict"


class StoreUnavailable(SchedulingError):
    """Transient store failure; safe to retry with backoff"""

    status_code = 503
    code = "store_unavailable"
