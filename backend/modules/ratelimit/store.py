"""
Rate limit store implementations.

InMemoryRateLimitStore keeps counters in the process and relies on the
limiter's periodic sweep to bound memory. RedisRateLimitStore shares
counters between instances and lets key TTLs do the purging.
"""

import hashlib
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis

from .models import RateLimitEntry


class InMemoryRateLimitStore:
    """
    Process-local counter store.

    Mutations happen between await points of a single event loop, so no
    lock is needed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        return self._entries.get(key)

    async def record(self, key: str, now: datetime) -> RateLimitEntry:
        existing = self._entries.get(key)
        if existing is None:
            entry = RateLimitEntry(count=1, first_attempt=now, last_attempt=now)
        else:
            entry = existing.model_copy(
                update={"count": existing.count + 1, "last_attempt": now}
            )
        self._entries[key] = entry
        return entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def purge(self, older_than: datetime) -> int:
        stale = [
            key for key, entry in self._entries.items()
            if entry.first_attempt < older_than
        ]
        for key in stale:
            del self._entries[key]
        return len(stale)


class RedisRateLimitStore:
    """
    Redis-backed counter store shared by all API instances.

    Each client key maps to a hash with ``count``, ``first`` and ``last``
    (epoch seconds). The hash expires one window after its first attempt.
    """

    KEY_PREFIX = "ratelimit:auth:"

    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int,
    ):
        self._client = client
        self._ttl_seconds = max(1, ttl_seconds)

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int, *, socket_timeout: float = 5.0) -> "RedisRateLimitStore":
        client = aioredis.from_url(
            redis_url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, ttl_seconds)

    def _redis_key(self, key: str) -> str:
        # Hash so IP/user-agent text cannot inject delimiters into the key space
        digest = hashlib.sha256(key.encode()).hexdigest()
        return f"{self.KEY_PREFIX}{digest}"

    @staticmethod
    def _to_datetime(value: str) -> datetime:
        return datetime.fromtimestamp(float(value), tz=timezone.utc)

    async def get(self, key: str) -> Optional[RateLimitEntry]:
        data = await self._client.hgetall(self._redis_key(key))
        if not data or "first" not in data:
            return None
        return RateLimitEntry(
            count=int(data.get("count", 0)),
            first_attempt=self._to_datetime(data["first"]),
            last_attempt=self._to_datetime(data.get("last", data["first"])),
        )

    async def record(self, key: str, now: datetime) -> RateLimitEntry:
        redis_key = self._redis_key(key)
        timestamp = now.timestamp()

        pipe = self._client.pipeline()
        pipe.hincrby(redis_key, "count", 1)
        pipe.hsetnx(redis_key, "first", timestamp)
        pipe.hset(redis_key, "last", timestamp)
        count, created, _ = await pipe.execute()

        if int(count) == 1 or created:
            await self._client.expire(redis_key, self._ttl_seconds)

        entry = await self.get(key)
        if entry is None:
            # Expired between the pipeline and the read
            return RateLimitEntry(count=int(count), first_attempt=now, last_attempt=now)
        return entry

    async def delete(self, key: str) -> None:
        await self._client.delete(self._redis_key(key))

    async def purge(self, older_than: datetime) -> int:
        # Key TTLs expire entries server-side
        return 0
