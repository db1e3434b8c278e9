"""
Rate limiting module exceptions.
"""

from shared.exceptions import RateLimitError


class RateLimitedError(RateLimitError):
    """Raised when a client exceeds the allowed attempts in the window."""

    def __init__(self, retry_after: int):
        super().__init__(
            "Too many authentication attempts. Please try again later.",
            code="RATE_LIMITED",
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after
