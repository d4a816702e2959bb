class ReservationError(Exception):
    """Base class for failures raised by the reservation core.

    Each subclass knows the HTTP status it maps to and how to render
    itself as a JSON body; the app registers a single handler for the base
    class.
    """

    status_code = 400
    default_message = "Request failed"

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {"error": self.message}


class ValidationError(ReservationError):
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message=None, fields=None):
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self):
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class ConflictError(ReservationError):
    status_code = 409
    default_message = "Time conflict with existing reservation or class schedule"

    def __init__(self, conflicts, message=None):
        super().__init__(message)
        self.conflicts = list(conflicts)

    def to_dict(self):
        body = super().to_dict()
        body["conflicts"] = [c.to_dict() for c in self.conflicts]
        return body


class AuthorizationError(ReservationError):
    # message stays generic; never echoes other users' data
    status_code = 403
    default_message = "You are not allowed to perform this action"


class StateError(ReservationError):
    status_code = 400
    default_message = "Status change not allowed"

    def __init__(self, current_status, requested_status, message=None):
        super().__init__(message or f"Cannot change status from {current_status} to {requested_status}")
        self.current_status = current_status
        self.requested_status = requested_status

    def to_dict(self):
        body = super().to_dict()
        body["current_status"] = self.current_status
        body["requested_status"] = self.requested_status
        return body


class NotFoundError(ReservationError):
    status_code = 404
    default_message = "Not found"


class TransientInfraError(ReservationError):
    status_code = 503
    default_message = "Service temporarily unavailable. Try again later."
