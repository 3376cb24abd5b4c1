from rest_framework import status

from apps.core.exceptions import ServiceError, flatten_errors


class WorkOrderError(ServiceError):
    """Base class for work order service errors"""


class ValidationFailed(WorkOrderError):
    """Payload failed field constraints; `errors` holds {field, message} pairs"""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, errors, message="Validation failed"):
        self.errors = list(errors)
        super().__init__(message)

    @classmethod
    def from_serializer_errors(cls, detail):
        return cls(flatten_errors(detail))

    @classmethod
    def for_field(cls, field, message):
        return cls([{"field": field, "message": message}])

    def payload(self):
        return {"errors": self.errors}


class NotFound(WorkOrderError):
    """
    No visible order matched the identifier

    Raised both for absent orders and for orders outside the caller's scope
    """

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, identifier=None):
        self.identifier = identifier
        super().__init__("Work order not found")


class InvalidTransition(WorkOrderError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot transition from {current} to {requested}")

    def payload(self):
        return {"current": self.current, "requested": self.requested}


class AccessDenied(WorkOrderError):
    status_code = status.HTTP_403_FORBIDDEN


class PersistenceError(WorkOrderError):
    """Counter increment or document write failed; not retried"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message="Failed to persist work order", cause=None):
        self.cause = cause
        super().__init__(message)
