"""
Credential store implementations.

InMemoryUserRepository backs development and tests. SupabaseUserRepository
stores users in the ``users`` table (see migrations/001_create_users.sql);
nested documents (profile, stats, game session) live in jsonb columns.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from supabase import PostgrestAPIError

from shared.clock import Clock, utc_now
from shared.models import UserStats
from shared.repository import BaseRepository
from modules.games.models import GameSession

from .models import LearnerProfile, User
from .exceptions import UserAlreadyExistsError

# Postgres unique_violation
_UNIQUE_VIOLATION = "23505"


def _ilike_contains(search: str) -> str:
    """
    Quoted PostgREST ilike operand matching ``search`` anywhere, literally.

    LIKE wildcards are escaped first, then the value is double-quoted so
    commas and parentheses cannot split the ``or`` filter.
    """
    literal = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    quoted = literal.replace("\\", "\\\\").replace('"', '\\"')
    return f'"%{quoted}%"'


class InMemoryUserRepository:
    """
    User store kept in a dict.

    Updates copy the stored model, so callers never share mutable records.
    """

    def __init__(self, clock: Clock = utc_now) -> None:
        self._users: dict[str, User] = {}
        self._clock = clock

    async def get_by_id(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        normalized = email.strip().lower()
        for user in self._users.values():
            if user.email.lower() == normalized:
                return user
        return None

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        for user in self._users.values():
            if user.google_id == google_id:
                return user
        return None

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        for user in self._users.values():
            if user.reset_token is not None and user.reset_token == token:
                return user
        return None

    async def find_by_refresh_token(self, user_id: str, refresh_token: str) -> Optional[User]:
        user = self._users.get(user_id)
        if user is None or not user.is_active:
            return None
        if user.refresh_token is None or user.refresh_token != refresh_token:
            return None
        return user

    async def create(self, user: User) -> User:
        if await self.get_by_email(user.email) is not None:
            raise UserAlreadyExistsError(user.email)
        if user.google_id and await self.get_by_google_id(user.google_id) is not None:
            raise UserAlreadyExistsError(user.email)
        self._users[user.id] = user
        return user

    async def update(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        user = self._users.get(user_id)
        if user is None:
            return None
        updated = user.model_copy(update={**changes, "updated_at": self._clock()})
        self._users[user_id] = updated
        return updated

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[User], int]:
        matches = [user for user in self._users.values() if user.is_active]
        if role:
            matches = [user for user in matches if user.role.value == role]
        if search:
            needle = search.lower()
            matches = [
                user for user in matches
                if needle in user.name.lower() or needle in user.email.lower()
            ]
        matches.sort(key=lambda user: user.created_at, reverse=True)
        offset = (page - 1) * limit
        return matches[offset : offset + limit], len(matches)

    async def get_game_session(self, user_id: str) -> Optional[GameSession]:
        user = self._users.get(user_id)
        return user.game_session if user is not None else None

    async def save_game_session(self, user_id: str, session: GameSession) -> None:
        await self.update(user_id, {"game_session": session})


class SupabaseUserRepository(BaseRepository[User]):
    """
    Repository for the ``users`` table.

    Note: This repository does NOT perform authorization checks.
    The service layer is responsible for those.
    """

    TABLE = "users"

    # Columns holding timestamps, converted on the way in and out
    _TIMESTAMP_COLUMNS = (
        "otp_expires_at",
        "reset_token_expires_at",
        "last_login",
        "created_at",
        "updated_at",
    )

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    def _map_to_user(self, row: dict[str, Any]) -> User:
        data = dict(row)
        for column in self._TIMESTAMP_COLUMNS:
            data[column] = self._parse_timestamp(data.get(column))
        data["profile"] = LearnerProfile.model_validate(data.get("profile") or {})
        data["stats"] = UserStats.model_validate(data.get("stats") or {})
        data["game_session"] = self._map_to_game_session(data.get("game_session"))
        return User.model_validate(data)

    def _map_to_game_session(self, value: Optional[dict[str, Any]]) -> GameSession:
        value = value or {}
        return GameSession(
            is_active=bool(value.get("is_active", False)),
            started_at=self._parse_timestamp(value.get("started_at")),
            expires_at=self._parse_timestamp(value.get("expires_at")),
            cooldown_until=self._parse_timestamp(value.get("cooldown_until")),
        )

    def _to_row(self, values: dict[str, Any]) -> dict[str, Any]:
        row: dict[str, Any] = {}
        for key, value in values.items():
            if isinstance(value, datetime):
                row[key] = self._format_timestamp(value)
            elif isinstance(value, (LearnerProfile, UserStats, GameSession)):
                row[key] = value.model_dump(mode="json")
            elif isinstance(value, Enum):
                row[key] = value.value
            else:
                row[key] = value
        return row

    def _first(self, result) -> Optional[User]:
        if not result.data:
            return None
        return self._map_to_user(result.data[0])

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_by_id(self, user_id: str) -> Optional[User]:
        result = await self._execute(self._db.table(self.TABLE).select("*").eq("id", user_id))
        return self._first(result)

    async def get_by_email(self, email: str) -> Optional[User]:
        # Emails are stored lower-cased
        result = await self._execute(
            self._db.table(self.TABLE)
            .select("*")
            .eq("email", email.strip().lower())
        )
        return self._first(result)

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        result = await self._execute(self._db.table(self.TABLE).select("*").eq("google_id", google_id))
        return self._first(result)

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        result = await self._execute(self._db.table(self.TABLE).select("*").eq("reset_token", token))
        return self._first(result)

    async def find_by_refresh_token(self, user_id: str, refresh_token: str) -> Optional[User]:
        result = await self._execute(
            self._db.table(self.TABLE)
            .select("*")
            .eq("id", user_id)
            .eq("refresh_token", refresh_token)
            .eq("is_active", True)
        )
        return self._first(result)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create(self, user: User) -> User:
        row = self._to_row(dict(user))
        try:
            result = await self._execute(self._db.table(self.TABLE).insert(row))
        except PostgrestAPIError as e:
            if e.code == _UNIQUE_VIOLATION:
                raise UserAlreadyExistsError(user.email) from e
            raise
        return self._map_to_user(result.data[0])

    async def update(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        row = self._to_row({**changes, "updated_at": utc_now()})
        result = await self._execute(self._db.table(self.TABLE).update(row).eq("id", user_id))
        return self._first(result)

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[User], int]:
        query = (
            self._db.table(self.TABLE)
            .select("*", count="exact")
            .eq("is_active", True)
        )
        if role:
            query = query.eq("role", role)
        if search:
            pattern = _ilike_contains(search)
            query = query.or_(f"name.ilike.{pattern},email.ilike.{pattern}")

        offset = (page - 1) * limit
        result = await self._execute(
            query.order("created_at", desc=True)
            .range(offset, offset + limit - 1)
        )
        users = [self._map_to_user(row) for row in result.data or []]
        return users, result.count or 0

    # -------------------------------------------------------------------------
    # Game session fields
    # -------------------------------------------------------------------------

    async def get_game_session(self, user_id: str) -> Optional[GameSession]:
        result = await self._execute(
            self._db.table(self.TABLE)
            .select("game_session")
            .eq("id", user_id)
        )
        if not result.data:
            return None
        return self._map_to_game_session(result.data[0].get("game_session"))

    async def save_game_session(self, user_id: str, session: GameSession) -> None:
        row = self._to_row({"game_session": session, "updated_at": utc_now()})
        await self._execute(self._db.table(self.TABLE).update(row).eq("id", user_id))
