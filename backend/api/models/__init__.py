"""API models package."""

from .errors import ErrorResponse, FieldError
from .responses import ApiResponse

__all__ = [
    "ErrorResponse",
    "FieldError",
    "ApiResponse",
]
