"""Error taxonomy shared by the services and the HTTP layer.

Every error the core raises derives from ``TimeTrackerError``. The HTTP
adapter maps each subclass to a status code in ``timetracker.main``.
"""


class TimeTrackerError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TimeTrackerError):
    """Malformed or missing input, e.g. an unparseable date."""

    status_code = 400


class ConflictError(TimeTrackerError):
    """The user already has an active session, or an email is taken."""

    status_code = 409


class NotFoundError(TimeTrackerError):
    """Missing resource, or one that belongs to another user."""

    status_code = 404

    def __init__(self, message: str = "Session not found"):
        super().__init__(message)


class InvalidStateError(TimeTrackerError):
    """Operation not allowed in the session's current state."""

    status_code = 400


class AuthError(TimeTrackerError):
    """Missing, malformed or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class StorageError(TimeTrackerError):
    """Any failure in the underlying database."""

    status_code = 500

    def __init__(self, message: str = "Internal storage error"):
        super().__init__(message)
