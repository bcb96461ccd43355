from __future__ import annotations


class SmithClientError(Exception):
    """Base client error."""

    @property
    def message(self) -> str:
        return str(self)


class AuthenticationRequired(SmithClientError):
    """No authenticated session; the caller must log in again."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message)


class TokenAcquisitionError(SmithClientError):
    """Identity provider failed to issue a bearer token."""


class ConfigLoadError(SmithClientError):
    """Service configuration could not be fetched or validated."""


class NetworkError(SmithClientError):
    """Transport/network layer error."""


class ApiError(SmithClientError):
    def __init__(self, status_code: int, message: str, details: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthError(ApiError):
    """Auth-related API error."""


class RequestBodyError(SmithClientError):
    """Request body cannot be encoded as JSON."""
