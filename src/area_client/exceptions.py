# src/area_client/exceptions.py

"""
Error taxonomy for the session and request layer.

Every failure surfaced to the UI boundary carries one human-readable
``message``; the HTTP status is kept alongside when one was involved.
"""

from typing import Any, Dict, Optional

GENERIC_API_FAILURE = "API request failed"


class AreaClientError(Exception):
    """Base exception for everything raised by area_client."""

    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Failure envelope as returned across the UI boundary."""
        return {"success": False, "message": self.message}


class ApiError(AreaClientError):
    """The backend answered with ``success: false``."""

    default_message = GENERIC_API_FAILURE


class AuthenticationRequiredError(ApiError):
    """A protected operation was attempted without any held token."""

    default_message = "Authentication required"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = 401):
        super().__init__(message, status_code)


class NotAuthenticatedError(AuthenticationRequiredError):
    """No session exists to take a token from."""

    default_message = "Not authenticated"


class SessionExpiredError(AreaClientError):
    """
    The backend rejected a held token.

    Raised only after the session has been purged; the caller is expected
    to send the user back to the login surface.
    """

    default_message = "Session expired. Please login again."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = 401):
        super().__init__(message, status_code)


class RefreshFailedError(AreaClientError):
    """The refresh-token exchange failed; the session has been purged."""

    default_message = "Token refresh failed"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = 401):
        super().__init__(message, status_code)


class RequestFailedError(AreaClientError):
    """Non-2xx response without a failure envelope to explain it."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        super().__init__(message or f"Request failed with status {status_code}", status_code)


class TransportError(AreaClientError):
    """Network failure or an undecodable response body."""

    default_message = "Network request failed"
