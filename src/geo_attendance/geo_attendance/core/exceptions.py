class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class InvalidCoordinate(ValidationError):
    """Raised when a latitude/longitude pair is out of range or not a number."""


class InvalidPayload(ValidationError):
    """Raised when a message crossing the native/HTTP boundary is malformed."""


class InvalidOrdering(ValidationError):
    """Raised when a check-out would precede the recorded check-in."""


class AlreadyCheckedIn(ValidationError):
    """Raised when a second check-in is requested for the same day."""


class NotFoundError(DomainError):
    """Raised when a zone or attendance record does not exist."""


class AuthenticationError(DomainError):
    """Raised when an identity assertion is missing, forged or expired."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class PermissionUnavailable(DomainError):
    """Raised by device collaborators that lack an OS permission."""


class RemoteUnavailable(DomainError):
    """Raised when the remote store cannot be reached (network, timeout, backend)."""


class RetryExhausted(DomainError):
    """A queued write failed on every attempt of a flush cycle. It stays queued."""

    def __init__(self, entry_id: str, attempts: int, last_error: Exception | None = None):
        super().__init__(f"write {entry_id} failed after {attempts} attempts: {last_error}")
        self.entry_id = entry_id
        self.attempts = attempts
        self.last_error = last_error
