"""
Custom exceptions for the session cut-over migration.

Source and destination stores raise these exceptions so the
migration runner can tell fatal failures from per-key ones.
"""


class SessionStorageError(Exception):
    """Base exception for all session migration errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StoreUnavailableError(SessionStorageError):
    """Raised when a store cannot be reached.

    Fatal when raised while enumerating keys: a partial key list
    could silently skip live sessions.
    """

    def __init__(self, store: str, cause: Exception | None = None):
        details = {"store": store}
        if cause:
            details["cause"] = str(cause)
        message = f"Store unavailable: {store}"
        if cause:
            message += f" ({cause})"
        super().__init__(message, details)
        self.store = store
        self.cause = cause


class SessionDecodeError(SessionStorageError):
    """Raised when a stored session payload cannot be decoded."""

    def __init__(self, key: str, reason: str):
        super().__init__(
            f"Cannot decode session {key}: {reason}",
            {"key": key, "reason": reason},
        )
        self.key = key
        self.reason = reason


class SessionValidationError(SessionStorageError):
    """Raised when a session record violates its invariants."""

    def __init__(self, message: str, field: str | None = None):
        details = {}
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.field = field


class PersistenceError(SessionStorageError):
    """Raised when writing a session to the destination fails.

    A duplicate session_id is not a persistence error; destinations
    report it through UpsertResult.ALREADY_EXISTS instead.
    """

    def __init__(self, session_id: str, cause: Exception | None = None):
        details = {"session_id": session_id}
        if cause:
            details["cause"] = str(cause)
        message = f"Failed to persist session {session_id}"
        if cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.session_id = session_id
        self.cause = cause


class ConfigurationError(SessionStorageError):
    """Raised when migration configuration is invalid."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Invalid configuration for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value
