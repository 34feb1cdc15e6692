"""
services/errors.py

Domain errors raised by the registration rules and the record services.
middlewares/error_handler.py turns every DomainError into the standard
ErrorResponse envelope using `code` and `status_code`.
"""


class DomainError(Exception):
    code = "DOMAIN_ERROR"
    status_code = 400
    default_message = "Request could not be processed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid input"


class InvalidTransitionError(ValidationError):
    code = "INVALID_TRANSITION"
    default_message = "Registration status change is not allowed"


class CapacityExceededError(DomainError):
    code = "CAPACITY_EXCEEDED"
    status_code = 409
    default_message = "This event has reached its maximum capacity"


class DeadlinePassedError(DomainError):
    code = "DEADLINE_PASSED"
    status_code = 400
    default_message = "Registration for this event has closed"


class DuplicateRegistrationError(DomainError):
    code = "DUPLICATE_REGISTRATION"
    status_code = 409
    default_message = "You are already registered for this event"


class NotRegisteredError(DomainError):
    code = "NOT_REGISTERED"
    status_code = 404
    default_message = "You are not registered for this event"


class ForbiddenError(DomainError):
    code = "FORBIDDEN"
    status_code = 403
    default_message = "You don't have permission to perform this action"


class NotFoundError(DomainError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"
