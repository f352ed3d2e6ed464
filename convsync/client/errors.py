"""Client exception hierarchy.

Every failure raised by ConversationClient is a TransportError subclass,
so background sync can absorb the whole family with one except clause
while user-triggered actions inspect the concrete type.
"""

from typing import Any

SESSION_EXPIRED_CODE = "SESSION_EXPIRED"

# Maximum characters of a non-JSON body kept for diagnostics
RAW_BODY_PREVIEW_CHARS = 200


class ConvsyncClientError(Exception):
    """Base exception for client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details


class TransportError(ConvsyncClientError):
    """A request did not yield a usable 2xx JSON response."""


class NetworkError(TransportError):
    """The request never completed (connection refused, DNS, timeout)."""


class UnexpectedContentTypeError(TransportError):
    """The server answered with something other than JSON."""

    def __init__(
        self,
        content_type: str | None,
        raw_body: str,
        status_code: int | None = None,
    ) -> None:
        self.content_type = content_type
        self.raw_body = raw_body[:RAW_BODY_PREVIEW_CHARS]
        super().__init__(
            f"Expected JSON but received {content_type}. Response: {self.raw_body}",
            status_code=status_code,
        )


class ResponseFormatError(TransportError):
    """A 2xx JSON body did not have the expected shape."""


class NotFoundError(TransportError):
    """404: the conversation (or session) does not exist."""


class SessionExpiredError(NotFoundError):
    """404 carrying the SESSION_EXPIRED code.

    The message always contains "Session expired" so callers matching
    on text and callers matching on ``code`` agree.
    """

    def __init__(self, message: str = "Session expired", details: Any = None) -> None:
        if "session expired" not in message.lower():
            message = f"Session expired: {message}"
        super().__init__(message, status_code=404, code=SESSION_EXPIRED_CODE, details=details)


class InvalidRequestError(TransportError):
    """Any other 4xx: the request was rejected as invalid."""


class ServerError(TransportError):
    """5xx: the backend failed, usually transiently."""


def error_for_status(
    status_code: int,
    message: str,
    code: str | None = None,
    details: Any = None,
) -> TransportError:
    """Build the exception matching an HTTP error status."""
    if status_code == 404:
        if code == SESSION_EXPIRED_CODE:
            return SessionExpiredError(message, details=details)
        return NotFoundError(message, status_code=status_code, code=code, details=details)
    if 400 <= status_code < 500:
        return InvalidRequestError(message, status_code=status_code, code=code, details=details)
    if status_code >= 500:
        return ServerError(message, status_code=status_code, code=code, details=details)
    return TransportError(message, status_code=status_code, code=code, details=details)
