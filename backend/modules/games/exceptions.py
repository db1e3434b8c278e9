"""
Game session module exceptions.
"""

from shared.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class GameSessionAlreadyActiveError(ConflictError):
    """Raised when starting a session while one is already running."""

    def __init__(self, time_left: int):
        super().__init__(
            "Already in active game session",
            code="ALREADY_ACTIVE",
            details={"time_left": time_left},
        )


class GameSessionCooldownError(AuthorizationError):
    """Raised when starting a session before the cooldown has elapsed."""

    def __init__(self, cooldown: int):
        super().__init__(
            f"Games are locked. Wait {cooldown} seconds.",
            code="IN_COOLDOWN",
            details={"cooldown": cooldown},
        )


class NoActiveGameSessionError(ValidationError):
    """Raised when ending a session that is not active."""

    def __init__(self):
        super().__init__("No active game session to end", code="NO_ACTIVE_SESSION")


class GameUserNotFoundError(NotFoundError):
    """Raised when the user owning the session no longer exists."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, code="USER_NOT_FOUND")
