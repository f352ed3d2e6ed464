"""Classify failures into the categories shown to users."""

from enum import Enum

from convsync.client.errors import (
    NetworkError,
    NotFoundError,
    ResponseFormatError,
    ServerError,
    SessionExpiredError,
)

CONNECTIVITY_MESSAGE = (
    "Unable to connect to the server. Please check your connection and try again."
)
NOT_FOUND_MESSAGE = "Conversation not found. Please refresh the page."
SERVER_MESSAGE = "The server encountered an error. Please try again in a moment."

_CONNECTIVITY_MARKERS = (
    "network",
    "fetch",
    "timeout",
    "timed out",
    "econnrefused",
    "enotfound",
    "connection refused",
)
_SERVER_MARKERS = ("500", "502", "503", "504", "internal server error", "server error")


class ErrorCategory(str, Enum):
    """User-facing failure category."""

    CONNECTIVITY = "connectivity"
    NOT_FOUND = "not_found"
    SERVER = "server"
    OTHER = "other"


def categorize(error: BaseException) -> ErrorCategory:
    """Pick the category for a failure.

    Typed client errors are classified by type. Anything else falls back
    to inspecting the error text.
    """
    if isinstance(error, NetworkError):
        return ErrorCategory.CONNECTIVITY
    if isinstance(error, NotFoundError):
        return ErrorCategory.NOT_FOUND
    if isinstance(error, ServerError):
        return ErrorCategory.SERVER
    if isinstance(error, ResponseFormatError):
        return ErrorCategory.OTHER

    status_code = getattr(error, "status_code", None)
    if isinstance(status_code, int):
        if status_code == 404:
            return ErrorCategory.NOT_FOUND
        if 500 <= status_code < 600:
            return ErrorCategory.SERVER
        return ErrorCategory.OTHER

    text = str(error).lower()
    if any(marker in text for marker in _CONNECTIVITY_MARKERS):
        return ErrorCategory.CONNECTIVITY
    if "404" in text or "not found" in text:
        return ErrorCategory.NOT_FOUND
    if any(marker in text for marker in _SERVER_MARKERS):
        return ErrorCategory.SERVER
    return ErrorCategory.OTHER


def is_connectivity_error(error: BaseException) -> bool:
    """True when the failure means the server could not be reached."""
    return categorize(error) is ErrorCategory.CONNECTIVITY


def user_message(error: BaseException) -> str:
    """Human-readable message for an explicit user action that failed.

    Session expiry keeps its own text so it stays distinguishable from
    a missing conversation.
    """
    if isinstance(error, SessionExpiredError):
        return error.message

    category = categorize(error)
    if category is ErrorCategory.CONNECTIVITY:
        return CONNECTIVITY_MESSAGE
    if category is ErrorCategory.NOT_FOUND:
        return NOT_FOUND_MESSAGE
    if category is ErrorCategory.SERVER:
        return SERVER_MESSAGE
    return str(error) or "An unexpected error occurred"
