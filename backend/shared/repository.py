"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and providing shared utilities for data operations.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar, Generic
from supabase import Client


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - Timestamp conversion helpers for row mapping

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class UserRepository(BaseRepository[User]):
            async def get_by_id(self, user_id: str) -> Optional[User]:
                result = await self._execute(self._db.table("users").select("*").eq("id", user_id))
                if not result.data:
                    return None
                return self._map_to_user(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    async def _execute(self, query: Any) -> Any:
        """Run a built query in a worker thread; the Supabase client is synchronous."""
        return await asyncio.to_thread(query.execute)

    @staticmethod
    def _parse_timestamp(value: Any) -> Optional[datetime]:
        """Convert an ISO timestamp from a row into an aware datetime."""
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            parsed = value
        else:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
        """Convert a datetime into the ISO form stored in timestamptz columns."""
        return value.isoformat() if value is not None else None
