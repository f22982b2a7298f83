"""Domain errors raised by services.

Every error carries the HTTP status it is reported with and an English
message; `main` renders them as `{"error": message}`.
"""


class ServiceError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ServiceError):
    """The referenced record does not exist."""
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    """A uniqueness rule (lesson number, email, pronunciation) would break."""
    status_code = 400
    default_message = "Record already exists"


class BadRequestError(ServiceError):
    """Malformed identity or missing input."""
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(ServiceError):
    status_code = 401
    default_message = "Invalid credentials"


class WriteFailedError(ServiceError):
    """A conditional write matched no record, e.g. a concurrent writer won."""
    status_code = 400
    default_message = "Write did not modify any record"
