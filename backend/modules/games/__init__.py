"""
Game session module.

Tracks the per-user inactive -> active -> cooldown cycle that gates access
to the games feature.

Public API:
- IGameSessionService / IGameSessionStore: Interfaces
- GameSession, GameSessionStatus, GameSessionState: Models
- derive_status, reconcile: Pure state machine functions
- Game session exceptions
"""

from .interfaces import IGameSessionService, IGameSessionStore
from .models import GameSession, GameSessionState, GameSessionStatus
from .state import SESSION_DURATION, COOLDOWN_DURATION, derive_status, reconcile
from .exceptions import (
    GameSessionAlreadyActiveError,
    GameSessionCooldownError,
    NoActiveGameSessionError,
    GameUserNotFoundError,
)

__all__ = [
    # Interfaces
    "IGameSessionService",
    "IGameSessionStore",
    # Models
    "GameSession",
    "GameSessionState",
    "GameSessionStatus",
    # State machine
    "SESSION_DURATION",
    "COOLDOWN_DURATION",
    "derive_status",
    "reconcile",
    # Exceptions
    "GameSessionAlreadyActiveError",
    "GameSessionCooldownError",
    "NoActiveGameSessionError",
    "GameUserNotFoundError",
]
