# parkgate/services/errors.py
"""
Rejection taxonomy for the admission / settlement core.

Every ParkingError carries the HTTP status and the title/message shown on the
booth display. main.py renders them as the "barrier closed" body.
"""

from typing import Optional


class ParkingError(Exception):
    status_code = 400
    default_title = "Error"

    def __init__(self, message: str, title: Optional[str] = None,
                 status_code: Optional[int] = None, extra: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.screen_title = title or self.default_title
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_screen(self) -> dict:
        return {
            "screen_message_type": "error",
            "screen_title": self.screen_title,
            "screen_message": self.message,
            "barrier_status": "closed",
            **self.extra,
        }


class ValidationError(ParkingError):
    status_code = 400
    default_title = "Invalid Request"


class NotFoundError(ParkingError):
    status_code = 404
    default_title = "Not Found"


class ConflictError(ParkingError):
    status_code = 409
    default_title = "Conflict"


class CapacityError(ParkingError):
    status_code = 400
    default_title = "No Slots Available"


class StateError(ParkingError):
    status_code = 400
    default_title = "Not Allowed"


class PaymentRequiredError(ParkingError):
    status_code = 403
    default_title = "Payment Required"


class ConfigurationError(ParkingError):
    status_code = 500
    default_title = "Configuration Error"


class StorageConflictError(ParkingError):
    status_code = 503
    default_title = "Please Retry"


class UpstreamDeviceError(Exception):
    """Barrier or display unreachable. Logged by the gateway, never surfaced to callers."""


class StaleRecordError(Exception):
    """A guarded write found the row changed since it was read; the transaction is re-run."""
