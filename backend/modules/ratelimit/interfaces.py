"""
Rate limiting module interfaces.

The limiter depends on IRateLimitStore, not on where counters live. An
in-process store only throttles the instance it runs in; deployments with
several instances need a shared store so they see one window per client.
"""

from datetime import datetime
from typing import Protocol, Optional, runtime_checkable

from .models import RateLimitEntry


@runtime_checkable
class IRateLimitStore(Protocol):
    """Storage for per-client attempt counters."""

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        """Get the entry for a client key, or None if there is none."""
        ...

    async def record(self, key: str, now: datetime) -> RateLimitEntry:
        """
        Count one attempt for a client key.

        Starts a new entry with ``first_attempt = now`` when none exists.

        Returns:
            The entry after the attempt was counted
        """
        ...

    async def delete(self, key: str) -> None:
        """Drop the entry for a client key."""
        ...

    async def purge(self, older_than: datetime) -> int:
        """
        Drop every entry whose window started before ``older_than``.

        Returns:
            Number of entries removed
        """
        ...
