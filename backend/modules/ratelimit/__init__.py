"""
Rate limiting module.

Throttles brute force against authentication endpoints.

Public API:
- IRateLimitStore: Interface for counter storage
- InMemoryRateLimitStore, RedisRateLimitStore: Store implementations
- RateLimiter, client_key: The limiter and its key builder
- RateLimitedError: Raised when a client is over the limit
"""

from .interfaces import IRateLimitStore
from .models import RateLimitEntry
from .store import InMemoryRateLimitStore, RedisRateLimitStore
from .limiter import RateLimiter, client_key
from .exceptions import RateLimitedError

__all__ = [
    "IRateLimitStore",
    "RateLimitEntry",
    "InMemoryRateLimitStore",
    "RedisRateLimitStore",
    "RateLimiter",
    "client_key",
    "RateLimitedError",
]
