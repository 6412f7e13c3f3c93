"""
Application exception types.

Each exception carries the `ErrorCategory` it classifies to, so the error
classifier can map it without inspecting message text. The message strings
keep the markers the fallback substring matcher looks for.

All custom exceptions inherit from the base `DisoError`.
"""

from diso.schemas.errors import ErrorCategory


class DisoError(Exception):
    """Base class for all custom exceptions in the application."""

    category: ErrorCategory = ErrorCategory.UNKNOWN


# --- Media Encoder ---
class FileTooLargeError(DisoError):
    """Raised before any read when the file exceeds the upload ceiling."""

    category = ErrorCategory.FILE_TOO_LARGE


class ReadFailureError(DisoError):
    """Raised when the file handle cannot be read (corrupt, revoked, vanished)."""

    category = ErrorCategory.READ_FAILURE


# --- Inference collaborator ---
class MissingApiKeyError(DisoError):
    category = ErrorCategory.AUTHENTICATION

    def __init__(self, message: str = "MISSING_API_KEY"):
        super().__init__(message)


class MalformedResponseError(DisoError):
    """The model answered without the structured report we asked for."""

    category = ErrorCategory.MALFORMED_RESPONSE

    def __init__(self, message: str = "NO_RESPONSE_TEXT"):
        super().__init__(message)


# --- Persistent storage ---
class StorageError(DisoError):
    pass


class StorageQuotaExceededError(StorageError):
    """Raised by a key-value store when a write would exceed its capacity."""

    pass


# --- Session usage ---
class RetryNotAvailableError(DisoError):
    """Raised when retry is requested outside a retryable Failed state."""

    pass


class HistoryRecordNotFoundError(DisoError):
    pass
