"""Exception hierarchy for fetchpipe.

All exceptions inherit from :class:`FetchpipeError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`fetchpipe.exit_codes`.
The top-level error handler in :func:`fetchpipe.app.main` catches
``FetchpipeError`` and exits with the appropriate code, while other
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Failures of a single API call form a closed set under :class:`ApiError`.
Exactly one of the three subclasses describes any failed call, and each
carries a ``kind`` discriminant so callers can branch without importing
every class::

    FetchpipeError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- ApiError
        +-- HttpError       (exit 3)  kind="http"
        +-- NetworkError    (exit 6)  kind="network"
        +-- UnexpectedError (exit 7)  kind="unexpected"
"""

from __future__ import annotations

from typing import Optional

from fetchpipe.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HTTP_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NETWORK_ERROR,
    EXIT_UNEXPECTED_ERROR,
)

UNKNOWN_API_ERROR = "Unknown API Error"
"""Message used by :class:`HttpError` when the response body is empty."""


class FetchpipeError(Exception):
    """Base exception for all fetchpipe errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`fetchpipe.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(FetchpipeError):
    """Raised for invalid CLI arguments or malformed request input."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(FetchpipeError):
    """Raised for configuration problems (missing profiles, invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class ApiError(FetchpipeError):
    """Base of the closed taxonomy of failed API calls.

    Never raised directly. :class:`~fetchpipe.client.ApiClient` raises
    exactly one of :class:`NetworkError`, :class:`HttpError` or
    :class:`UnexpectedError`.
    """

    kind: str = ""


class NetworkError(ApiError):
    """The transport failed before any response was obtained.

    Args:
        cause: The connectivity-level exception reported by the transport.
    """

    kind = "network"
    exit_code = EXIT_NETWORK_ERROR

    def __init__(self, cause: BaseException):
        super().__init__(f"Network connection failed: {cause}")
        self.cause = cause


class HttpError(ApiError):
    """A response arrived but its status was outside ``[200, 299]``.

    Args:
        status: The HTTP status code of the response.
        message: The response body text. An empty body is replaced with
            :data:`UNKNOWN_API_ERROR`.
    """

    kind = "http"
    exit_code = EXIT_HTTP_ERROR

    def __init__(self, status: int, message: Optional[str] = None):
        self.status = status
        self.message = message or UNKNOWN_API_ERROR
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"HttpError(status={self.status!r}, message={self.message!r})"


class UnexpectedError(ApiError):
    """Any other pipeline failure, e.g. a body that does not decode.

    Args:
        cause: The underlying exception.
    """

    kind = "unexpected"
    exit_code = EXIT_UNEXPECTED_ERROR

    def __init__(self, cause: BaseException):
        super().__init__(f"Unexpected error occurred: {cause}")
        self.cause = cause
