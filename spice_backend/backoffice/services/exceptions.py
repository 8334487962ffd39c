# backoffice/services/exceptions.py

"""
BACK-OFFICE CLIENT ERRORS

Centralized errors for calls into the back-office REST API.
No retries happen anywhere: every error is terminal for that attempt.
"""


class BackofficeError(Exception):
    """Base exception for all back-office API failures."""


class BackofficeConfigurationError(BackofficeError):
    """Raised when the API base URL is not configured."""


class BackofficeUnavailableError(BackofficeError):
    """Raised on network failures (DNS, refused connection, socket timeout)."""


class BackofficeHTTPError(BackofficeError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, message: str, *, status: int, payload=None):
        super().__init__(message)
        self.status = status
        self.payload = payload


class BackofficeResponseError(BackofficeError):
    """Raised when a 2xx response body is not the JSON shape we expect."""
