"""Tests for GameSessionService."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from modules.games.interfaces import IGameSessionService, IGameSessionStore
from modules.games.models import GameSession, GameSessionState
from modules.games.service import GameSessionService
from modules.games.exceptions import (
    GameSessionAlreadyActiveError,
    GameSessionCooldownError,
    GameUserNotFoundError,
    NoActiveGameSessionError,
)


class DictSessionStore:
    """Game session store keyed by user id that counts writes."""

    def __init__(self, users: Optional[list[str]] = None):
        self.sessions: dict[str, GameSession] = {user: GameSession() for user in users or []}
        self.writes = 0

    async def get_game_session(self, user_id: str) -> Optional[GameSession]:
        return self.sessions.get(user_id)

    async def save_game_session(self, user_id: str, session: GameSession) -> None:
        self.sessions[user_id] = session
        self.writes += 1


class MutableClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def store() -> DictSessionStore:
    return DictSessionStore(users=["user-1"])


@pytest.fixture
def game_clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def service(store, game_clock) -> GameSessionService:
    return GameSessionService(store, clock=game_clock)


class TestInterfaces:
    def test_service_satisfies_protocol(self, service):
        assert isinstance(service, IGameSessionService)

    def test_store_satisfies_protocol(self, store):
        assert isinstance(store, IGameSessionStore)


class TestGetStatus:
    @pytest.mark.asyncio
    async def test_new_user_is_inactive(self, service):
        status = await service.get_status("user-1")
        assert status.status == GameSessionState.INACTIVE

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        with pytest.raises(GameUserNotFoundError) as exc_info:
            await service.get_status("nobody")
        assert exc_info.value.code == "USER_NOT_FOUND"
        assert exc_info.value.details == {}

    @pytest.mark.asyncio
    async def test_status_read_writes_only_on_transition(self, service, store, game_clock):
        await service.start_session("user-1")
        writes = store.writes

        game_clock.advance(minutes=10)
        await service.get_status("user-1")
        assert store.writes == writes

        game_clock.advance(minutes=6)
        status = await service.get_status("user-1")
        assert status.status == GameSessionState.COOLDOWN
        assert store.writes == writes + 1
        assert store.sessions["user-1"].is_active is False

        await service.get_status("user-1")
        assert store.writes == writes + 1


class TestStartSession:
    @pytest.mark.asyncio
    async def test_start_from_inactive(self, service, store):
        status = await service.start_session("user-1")
        assert status.status == GameSessionState.ACTIVE
        assert status.time_left == 900
        assert store.sessions["user-1"].is_active is True

    @pytest.mark.asyncio
    async def test_start_while_active(self, service, game_clock):
        await service.start_session("user-1")
        game_clock.advance(minutes=5)
        with pytest.raises(GameSessionAlreadyActiveError) as exc_info:
            await service.start_session("user-1")
        assert exc_info.value.status_code == 409
        assert exc_info.value.code == "ALREADY_ACTIVE"
        assert exc_info.value.details["time_left"] == 600

    @pytest.mark.asyncio
    async def test_start_during_cooldown(self, service, game_clock):
        await service.start_session("user-1")
        game_clock.advance(minutes=16)
        with pytest.raises(GameSessionCooldownError) as exc_info:
            await service.start_session("user-1")
        assert exc_info.value.status_code == 403
        assert exc_info.value.code == "IN_COOLDOWN"
        assert exc_info.value.message == "Games are locked. Wait 3540 seconds."

    @pytest.mark.asyncio
    async def test_start_around_expiry_instant(self, service, game_clock):
        await service.start_session("user-1")

        game_clock.advance(minutes=14, seconds=59, milliseconds=999)
        with pytest.raises(GameSessionAlreadyActiveError) as exc_info:
            await service.start_session("user-1")
        assert exc_info.value.code == "ALREADY_ACTIVE"
        assert exc_info.value.details == {"time_left": 0}

        game_clock.advance(milliseconds=2)
        with pytest.raises(GameSessionCooldownError) as exc_info:
            await service.start_session("user-1")
        assert exc_info.value.code == "IN_COOLDOWN"
        assert exc_info.value.details == {"cooldown": 3599}

    @pytest.mark.asyncio
    async def test_start_after_cooldown(self, service, game_clock):
        await service.start_session("user-1")
        game_clock.advance(minutes=75)
        status = await service.start_session("user-1")
        assert status.status == GameSessionState.ACTIVE


class TestEndSession:
    @pytest.mark.asyncio
    async def test_end_active_session(self, service, store, game_clock):
        await service.start_session("user-1")
        game_clock.advance(minutes=5)
        status = await service.end_session("user-1")

        assert status.status == GameSessionState.COOLDOWN
        assert status.cooldown == 3600
        stored = store.sessions["user-1"]
        assert stored.expires_at == game_clock.now
        assert stored.cooldown_until == game_clock.now + timedelta(minutes=60)

    @pytest.mark.asyncio
    async def test_end_without_session(self, service):
        with pytest.raises(NoActiveGameSessionError) as exc_info:
            await service.end_session("user-1")
        assert exc_info.value.status_code == 400
        assert exc_info.value.code == "NO_ACTIVE_SESSION"

    @pytest.mark.asyncio
    async def test_end_after_natural_expiry(self, service, game_clock):
        await service.start_session("user-1")
        game_clock.advance(minutes=20)
        with pytest.raises(NoActiveGameSessionError):
            await service.end_session("user-1")

    @pytest.mark.asyncio
    async def test_start_blocked_after_early_end(self, service, game_clock):
        await service.start_session("user-1")
        game_clock.advance(minutes=2)
        await service.end_session("user-1")
        game_clock.advance(minutes=59)
        with pytest.raises(GameSessionCooldownError):
            await service.start_session("user-1")
        game_clock.advance(minutes=1)
        status = await service.start_session("user-1")
        assert status.status == GameSessionState.ACTIVE
