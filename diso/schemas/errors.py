from enum import Enum

from pydantic import BaseModel


class ErrorCategory(str, Enum):
    AUTHENTICATION = "authentication"
    INVALID_MEDIA = "invalid_media"
    SERVICE_OVERLOADED = "service_overloaded"
    NETWORK_UNAVAILABLE = "network_unavailable"
    FILE_TOO_LARGE = "file_too_large"
    READ_FAILURE = "read_failure"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN = "unknown"


class ErrorIcon(str, Enum):
    KEY = "key"
    NETWORK = "network"
    FILE = "file"
    SERVER = "server"
    ALERT = "alert"


class ClassifiedError(BaseModel):
    category: ErrorCategory
    message: str    # Fixed user-facing text for the category
    icon: ErrorIcon
    retryable: bool  # False only when a new file is required
