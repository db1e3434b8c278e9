"""
Sliding-window rate limiter for authentication endpoints.

Counts failed attempts per client key (IP + user agent) and rejects further
attempts once a key reaches the limit within its window. The window of a
key starts at its first recorded attempt and is reset once it elapses.
"""

import asyncio
import logging
import math
from datetime import timedelta
from typing import Optional

from shared.clock import Clock, utc_now

from .interfaces import IRateLimitStore
from .models import RateLimitEntry
from .exceptions import RateLimitedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 50
DEFAULT_WINDOW = timedelta(minutes=15)
DEFAULT_SWEEP_INTERVAL = timedelta(minutes=5)


def client_key(client_ip: Optional[str], user_agent: Optional[str]) -> str:
    """Build the limiter key for a client."""
    return f"{client_ip or 'unknown'}|{user_agent or ''}"


class RateLimiter:
    """
    Failed-attempt limiter over a pluggable store.

    Deliberately coarse: keyed by client, not by account, so it needs no
    per-account shared state.
    """

    def __init__(
        self,
        store: IRateLimitStore,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window: timedelta = DEFAULT_WINDOW,
        clock: Clock = utc_now,
    ):
        self._store = store
        self.max_attempts = max_attempts
        self.window = window
        self._clock = clock

    def _expired(self, entry: RateLimitEntry, now) -> bool:
        return now - entry.first_attempt > self.window

    async def check(self, key: str) -> None:
        """
        Reject the request if the key is over the limit.

        Raises:
            RateLimitedError: If the key has max_attempts failures in its window
        """
        now = self._clock()
        entry = await self._store.get(key)
        if entry is None:
            return
        if self._expired(entry, now):
            await self._store.delete(key)
            return
        if entry.count >= self.max_attempts:
            retry_after = math.ceil(
                (entry.first_attempt + self.window - now).total_seconds()
            )
            logger.warning(f"Rate limit exceeded for client key {key!r} ({entry.count} attempts)")
            raise RateLimitedError(retry_after=max(1, retry_after))

    async def record_failure(self, key: str) -> RateLimitEntry:
        """Count a failed attempt, starting a fresh window if the old one elapsed."""
        now = self._clock()
        entry = await self._store.get(key)
        if entry is not None and self._expired(entry, now):
            await self._store.delete(key)
        return await self._store.record(key, now)

    async def sweep(self) -> int:
        """Purge entries whose window has elapsed."""
        removed = await self._store.purge(self._clock() - self.window)
        if removed:
            logger.debug(f"Rate limiter sweep removed {removed} entries")
        return removed

    async def run_sweeper(self, interval: timedelta = DEFAULT_SWEEP_INTERVAL) -> None:
        """
        Sweep forever at a fixed interval.

        Meant to run as a background task; stops when the task is cancelled.
        """
        seconds = interval.total_seconds()
        while True:
            await asyncio.sleep(seconds)
            try:
                await self.sweep()
            except Exception:
                logger.warning("Rate limiter sweep failed", exc_info=True)
