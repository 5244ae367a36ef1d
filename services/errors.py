"""
Domain errors raised by the storage adapters and the report service.

Each error carries the HTTP status the API layer answers with; the mapping
is applied by a single exception handler registered in main.py.
"""


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    """Referenced user, month, day or report does not exist."""

    status_code = 404


class InvalidInputError(ServiceError):
    """Malformed identifiers, dates or payloads."""

    status_code = 400


class LimitExceededError(ServiceError):
    """A day already holds the maximum number of moods."""

    status_code = 400


class UpstreamFailureError(ServiceError):
    """The document store failed or returned an unusable response."""

    status_code = 502


__all__ = [
    "ServiceError",
    "NotFoundError",
    "InvalidInputError",
    "LimitExceededError",
    "UpstreamFailureError",
]
