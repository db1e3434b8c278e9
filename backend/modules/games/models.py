"""
Game session module data models.

A game session is a per-user, time-boxed entitlement to the games feature,
followed by a mandatory cooldown. Only timestamps are stored; the state is
always derived from them and the current time.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import Field

from shared.models import CamelModel


class GameSessionState(str, Enum):
    """Game access state derived from the stored session fields."""

    INACTIVE = "inactive"  # Never started, or cooldown elapsed
    ACTIVE = "active"      # now < expires_at
    COOLDOWN = "cooldown"  # expires_at <= now < cooldown_until


class GameSession(CamelModel):
    """Game session fields persisted on the user record."""

    is_active: bool = Field(default=False, description="Stored active flag (eventually consistent)")
    started_at: Optional[datetime] = Field(None, description="When the current session started")
    expires_at: Optional[datetime] = Field(None, description="When the active window ends")
    cooldown_until: Optional[datetime] = Field(None, description="When games unlock again")


class GameSessionStatus(CamelModel):
    """Status returned to clients by every game session endpoint."""

    status: GameSessionState
    time_left: int = Field(default=0, ge=0, description="Seconds until the active window ends")
    cooldown: int = Field(default=0, ge=0, description="Seconds until the cooldown ends")
