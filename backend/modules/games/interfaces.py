"""
Game session module interfaces.

The tracker does not own storage: any store that can read and write the
session fields of a user satisfies IGameSessionStore (the user repository
does).
"""

from typing import Protocol, Optional, runtime_checkable

from .models import GameSession, GameSessionStatus


@runtime_checkable
class IGameSessionStore(Protocol):
    """Persistence for per-user game session fields."""

    async def get_game_session(self, user_id: str) -> Optional[GameSession]:
        """
        Load a user's game session fields.

        Returns:
            The stored fields, or None if the user does not exist
        """
        ...

    async def save_game_session(self, user_id: str, session: GameSession) -> None:
        """Overwrite a user's game session fields (last write wins)."""
        ...


@runtime_checkable
class IGameSessionService(Protocol):
    """Interface for game session operations."""

    async def get_status(self, user_id: str) -> GameSessionStatus:
        """
        Get the current game access state.

        Persists a correction only when a time-driven transition is observed.
        """
        ...

    async def start_session(self, user_id: str) -> GameSessionStatus:
        """
        Start a game session.

        Raises:
            GameSessionAlreadyActiveError: If a session is running
            GameSessionCooldownError: If the cooldown has not elapsed
        """
        ...

    async def end_session(self, user_id: str) -> GameSessionStatus:
        """
        End the running session early and start the cooldown.

        Raises:
            NoActiveGameSessionError: If no session is running
        """
        ...
