"""
Game session service implementation.

Reads are lazy: the status is derived from stored timestamps on every call
and stale fields are written back only when a transition is observed.
"""

import logging

from shared.clock import Clock, utc_now

from .interfaces import IGameSessionStore
from .models import GameSession, GameSessionState, GameSessionStatus
from .state import begin, derive_status, reconcile, terminate
from .exceptions import (
    GameSessionAlreadyActiveError,
    GameSessionCooldownError,
    GameUserNotFoundError,
    NoActiveGameSessionError,
)

logger = logging.getLogger(__name__)


class GameSessionService:
    """
    Per-user game session tracker.

    Concurrent start/end calls for the same user are not serialized; the
    store applies them last-write-wins.
    """

    def __init__(self, store: IGameSessionStore, clock: Clock = utc_now):
        self._store = store
        self._clock = clock

    async def _load(self, user_id: str) -> GameSession:
        session = await self._store.get_game_session(user_id)
        if session is None:
            raise GameUserNotFoundError()
        return session

    async def _current(self, user_id: str, now) -> GameSession:
        """Load the session and persist any transition that has happened."""
        session = await self._load(user_id)
        corrected = reconcile(session, now)
        if corrected is None:
            return session
        logger.debug(
            f"Reconciled game session for user {user_id}: "
            f"is_active={corrected.is_active} cooldown_until={corrected.cooldown_until}"
        )
        await self._store.save_game_session(user_id, corrected)
        return corrected

    async def get_status(self, user_id: str) -> GameSessionStatus:
        now = self._clock()
        session = await self._current(user_id, now)
        return derive_status(session, now)

    async def start_session(self, user_id: str) -> GameSessionStatus:
        now = self._clock()
        session = await self._current(user_id, now)
        current = derive_status(session, now)

        if current.status == GameSessionState.ACTIVE:
            raise GameSessionAlreadyActiveError(current.time_left)
        if current.status == GameSessionState.COOLDOWN:
            raise GameSessionCooldownError(current.cooldown)

        started = begin(now)
        await self._store.save_game_session(user_id, started)
        logger.info(f"Game session started for user {user_id}, expires {started.expires_at}")
        return derive_status(started, now)

    async def end_session(self, user_id: str) -> GameSessionStatus:
        now = self._clock()
        session = await self._current(user_id, now)

        if derive_status(session, now).status != GameSessionState.ACTIVE:
            raise NoActiveGameSessionError()

        ended = terminate(session, now)
        await self._store.save_game_session(user_id, ended)
        logger.info(f"Game session ended early for user {user_id}, cooldown until {ended.cooldown_until}")
        return derive_status(ended, now)
