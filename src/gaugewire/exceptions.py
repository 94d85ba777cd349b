"""Exceptions raised by gaugewire."""

from __future__ import annotations

from enum import StrEnum


class ErrorType(StrEnum):
    """Category of an :class:`EgaugeError`."""

    BAD_REQUEST = "BAD_REQUEST"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    SERVER = "SERVER"
    UNKNOWN = "UNKNOWN"
    PARSE = "PARSE"
    AUTH = "AUTH"


class EgaugeError(Exception):
    """Base class for errors reported by the eGauge API.

    ``data`` keeps the response payload (or the underlying cause) for
    diagnostics.
    """

    def __init__(self, message: str, error_type: ErrorType, data: object = None) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.data = data


class EgaugeRequestError(EgaugeError):
    """Raised when the device answers with a non-success HTTP status."""

    def __init__(
        self, message: str, error_type: ErrorType, status: int, data: object = None
    ) -> None:
        super().__init__(message, error_type, data)
        self.status = status


class EgaugeParseError(EgaugeError):
    """Raised when a response body does not have the expected shape."""

    def __init__(
        self, message: str = "Error parsing eGauge response.", data: object = None
    ) -> None:
        super().__init__(message, ErrorType.PARSE, data)


class EgaugeAuthError(EgaugeError):
    """Raised when the login exchange does not yield a token."""

    def __init__(self, message: str, data: object = None) -> None:
        super().__init__(message, ErrorType.AUTH, data)


class MissingMultiplierError(KeyError):
    """Raised when no multiplier is configured for a register type."""


_STATUS_ERRORS: dict[int, tuple[ErrorType, str]] = {
    400: (ErrorType.BAD_REQUEST, "Bad eGauge request made."),
    403: (ErrorType.FORBIDDEN, "Operation not permitted with this account."),
    404: (ErrorType.NOT_FOUND, "eGauge or endpoint not found."),
    500: (ErrorType.SERVER, "eGauge device error. Please troubleshoot the device directly."),
}


def error_from_status(status: int, data: object = None) -> EgaugeRequestError:
    """Map an HTTP status code to a typed :class:`EgaugeRequestError`."""
    error_type, message = _STATUS_ERRORS.get(
        status, (ErrorType.UNKNOWN, f"Unknown eGauge request error (HTTP {status}).")
    )
    return EgaugeRequestError(message, error_type, status, data)
