"""Domain errors raised by services and mapped to HTTP status codes by the routers."""


class UserManagementError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(UserManagementError):
    """Raised when a user or session does not exist."""

    status_code = 404


class ConflictError(UserManagementError):
    """Raised when an email address is already taken by another user."""

    status_code = 400


class UnauthorizedError(UserManagementError):
    """Raised when authentication fails or no principal is present."""

    status_code = 401


class ForbiddenError(UserManagementError):
    """Raised when an authenticated principal is denied by a policy."""

    status_code = 403


class IntegrityViolationError(UserManagementError):
    """
    Raised when a persisted record is corrupt (no password digest, unknown role).

    Never treated as an ordinary authentication failure.
    """

    status_code = 500


class PolicyEvaluationError(UserManagementError):
    """Raised when a requirement cannot be evaluated. Distinct from a DENY decision."""

    status_code = 500


class EventChannelUnavailableError(UserManagementError):
    """Raised when the event channel cannot be read (Redis unreachable)."""

    status_code = 503
