"""
Shared data models used across modules.

These models are shared infrastructure, not business logic.
Module-specific models should stay in their respective module directories.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that speaks camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class UserStats(CamelModel):
    """Activity counters kept on every user record."""

    total_roadmaps: int = 0
    total_chats: int = 0
    courses_completed: int = 0


class Principal(CamelModel):
    """
    The authenticated user attached to a request.

    Built by the request authenticator from the stored user record after the
    bearer token has been verified, and made available to route handlers via
    dependency injection.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,  # Make immutable for safety
    )

    id: str = Field(..., description="User ID")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="User's email address")
    role: str = Field(default="student", description="Authorization tier")
    is_active: bool = Field(default=True, description="Soft-disable flag")
    last_login: Optional[datetime] = Field(None, description="Last sign-in time")
    stats: UserStats = Field(default_factory=UserStats)

    @computed_field(alias="userId")
    @property
    def user_id(self) -> str:
        """Alias of ``id`` kept for clients that read ``userId``."""
        return self.id

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
