"""Error taxonomy shared by services and the HTTP layer."""


class GiveroomError(Exception):
    """Base class for all domain errors."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(GiveroomError):
    """Bad or missing input. User-correctable."""

    default_message = "Invalid input"


class InvalidCredentials(GiveroomError):
    """Login failed. The message never says which field was wrong."""

    default_message = "Invalid username or password"


class NotFound(GiveroomError):
    """Unknown code or resource."""

    default_message = "Not found"


class Unauthorized(GiveroomError):
    """No resolved identity for an operation that needs one."""

    default_message = "Not authenticated"


class Forbidden(GiveroomError):
    """Resolved identity is not allowed to perform the operation."""

    default_message = "Forbidden"


class StorageError(GiveroomError):
    """Storage backend failure."""

    default_message = "Storage failure"


class StorageTransient(StorageError):
    """Recoverable backend failure (connection loss, lock timeout). Retryable."""

    default_message = "Storage temporarily unavailable"


class StorageFatal(StorageError):
    """Constraint violation or other non-retryable backend failure."""

    default_message = "Storage constraint violated"
