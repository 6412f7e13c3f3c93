"""
Maps any raw failure from encoding, transport or the inference service to a
fixed, user-facing error category.

Structured signals are tried first (our own exception types, Gemini API
status codes, transport exception classes). Free-text substring matching over
the message is only a fallback for failures that carry nothing structured.

`classify` is total: it never raises, and anything unrecognised becomes
`ErrorCategory.UNKNOWN`.
"""

import asyncio
import json
import logging

import aiohttp
import httpx
from google.genai import errors as genai_errors
from pydantic import ValidationError

from diso.config import settings
from diso.core.exceptions import DisoError
from diso.schemas.errors import ClassifiedError, ErrorCategory, ErrorIcon

logger = logging.getLogger(__name__)

_MESSAGES = {
    ErrorCategory.AUTHENTICATION: "Authentication Failed. Please check your API Key configuration.",
    ErrorCategory.INVALID_MEDIA: "Analysis Rejected. The media format might be unsupported or the file is corrupted.",
    ErrorCategory.SERVICE_OVERLOADED: "System Overload. The AI forensic model is currently busy. Please try again in a moment.",
    ErrorCategory.NETWORK_UNAVAILABLE: "Network Error. Please check your internet connection.",
    ErrorCategory.READ_FAILURE: "Failed to read file. Please try another file.",
    ErrorCategory.MALFORMED_RESPONSE: "Analysis Error. The AI model failed to generate a structured report.",
    ErrorCategory.UNKNOWN: "An unexpected error occurred during analysis. Please try again.",
}

_ICONS = {
    ErrorCategory.AUTHENTICATION: ErrorIcon.KEY,
    ErrorCategory.NETWORK_UNAVAILABLE: ErrorIcon.NETWORK,
    ErrorCategory.FILE_TOO_LARGE: ErrorIcon.FILE,
    ErrorCategory.SERVICE_OVERLOADED: ErrorIcon.SERVER,
}

# Checked in order; the first category with a matching marker wins.
_MESSAGE_MARKERS = (
    (ErrorCategory.AUTHENTICATION, ("MISSING_API_KEY", "API key", "403")),
    (ErrorCategory.INVALID_MEDIA, ("400", "INVALID_ARGUMENT")),
    (ErrorCategory.SERVICE_OVERLOADED, ("503", "500", "Overloaded")),
    (ErrorCategory.NETWORK_UNAVAILABLE, ("fetch", "network", "Failed to fetch")),
    (ErrorCategory.FILE_TOO_LARGE, ("File too large",)),
    (ErrorCategory.MALFORMED_RESPONSE, ("NO_RESPONSE_TEXT",)),
)

_STATUS_CODES = {
    401: ErrorCategory.AUTHENTICATION,
    403: ErrorCategory.AUTHENTICATION,
    400: ErrorCategory.INVALID_MEDIA,
    429: ErrorCategory.SERVICE_OVERLOADED,
    500: ErrorCategory.SERVICE_OVERLOADED,
    502: ErrorCategory.SERVICE_OVERLOADED,
    503: ErrorCategory.SERVICE_OVERLOADED,
    504: ErrorCategory.SERVICE_OVERLOADED,
}

_NETWORK_ERRORS = (
    aiohttp.ClientConnectionError,
    httpx.TransportError,
    ConnectionError,
    asyncio.TimeoutError,
    TimeoutError,
)


def file_too_large_message() -> str:
    return f"File too large. Please upload media under {settings.max_upload_mb}MB."


def message_for(category: ErrorCategory) -> str:
    if category is ErrorCategory.FILE_TOO_LARGE:
        return file_too_large_message()
    return _MESSAGES[category]


def build_error(category: ErrorCategory) -> ClassifiedError:
    return ClassifiedError(
        category=category,
        message=message_for(category),
        icon=_ICONS.get(category, ErrorIcon.ALERT),
        retryable=category is not ErrorCategory.FILE_TOO_LARGE,
    )


def _structured_category(error: BaseException) -> ErrorCategory | None:
    if isinstance(error, DisoError):
        return error.category
    if isinstance(error, genai_errors.APIError):
        return _STATUS_CODES.get(error.code)
    if isinstance(error, _NETWORK_ERRORS):
        return ErrorCategory.NETWORK_UNAVAILABLE
    if isinstance(error, (ValidationError, json.JSONDecodeError)):
        return ErrorCategory.MALFORMED_RESPONSE
    return None


def _message_category(message: str) -> ErrorCategory:
    for category, markers in _MESSAGE_MARKERS:
        if any(marker in message for marker in markers):
            return category
    return ErrorCategory.UNKNOWN


def classify_category(error: object) -> ErrorCategory:
    try:
        if isinstance(error, BaseException):
            category = _structured_category(error)
            if category is not None:
                return category
        message = "" if error is None else str(error)
        return _message_category(message)
    except Exception as e:
        logger.error(f"[CLASSIFIER] Failed to classify {type(error).__name__}: {e}")
        return ErrorCategory.UNKNOWN


def classify(error: object) -> ClassifiedError:
    """Map a raw failure to its category, fixed message and icon. Never raises."""
    category = classify_category(error)
    logger.info(f"[CLASSIFIER] {type(error).__name__} -> {category.value}")
    return build_error(category)
