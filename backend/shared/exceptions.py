"""
Base exception classes for the TrackWise backend.

Each module should define its own exceptions that inherit from these bases.
Every base carries the HTTP status the API layer answers with, so handlers
can convert any TrackwiseError into the standard error envelope.
"""

from typing import Optional, Any


class TrackwiseError(Exception):
    """
    Base exception for all TrackWise errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(TrackwiseError):
    """Resource not found."""

    status_code = 404


class ValidationError(TrackwiseError):
    """Input validation failed."""

    status_code = 400


class AuthenticationError(TrackwiseError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401


class AuthorizationError(TrackwiseError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403


class ConflictError(TrackwiseError):
    """The request conflicts with the current state of a resource."""

    status_code = 409


class RateLimitError(TrackwiseError):
    """Too many requests from the same client."""

    status_code = 429


class ConfigurationError(TrackwiseError):
    """Server is missing required configuration."""

    pass


class ExternalServiceError(TrackwiseError):
    """Error communicating with an external service."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
