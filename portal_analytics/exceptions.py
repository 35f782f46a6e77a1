"""Project-wide custom exception types."""

from typing import Optional


class PortalApiError(RuntimeError):
    """Raised when a portal API request fails or returns an unusable payload."""

    def __init__(
        self, message: str, status_code: Optional[int] = None
    ) -> None:  # noqa: D401 – simple constructor
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(PortalApiError):
    """Raised when the backend rejects the bearer token (401/403)."""
