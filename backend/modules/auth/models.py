"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from shared.models import CamelModel, Principal, UserStats
from modules.games.models import GameSession


class Role(str, Enum):
    """Authorization tier."""

    STUDENT = "student"
    ADMIN = "admin"


class AuthProvider(str, Enum):
    """How the account signs in."""

    LOCAL = "local"
    GOOGLE = "google"


class TokenType(str, Enum):
    """Discriminator carried in every token's ``type`` claim."""

    ACCESS = "access"
    REFRESH = "refresh"


class Experience(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class LearnerProfile(CamelModel):
    """Self-reported learner details."""

    age: Optional[int] = Field(None, ge=13, le=100)
    education: Optional[str] = Field(None, max_length=100)
    experience: Experience = Experience.BEGINNER
    interests: list[str] = Field(default_factory=list)

    @field_validator("interests")
    @classmethod
    def _check_interests(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        for item in cleaned:
            if len(item) > 30:
                raise ValueError("Interests cannot exceed 30 characters")
        return cleaned


class User(BaseModel):
    """
    Full credential store record.

    Never returned to clients directly; use ``to_public()``.
    """

    id: str = Field(..., description="User ID (UUID)")
    name: str = Field(..., description="Display name")
    email: EmailStr = Field(..., description="Lower-cased email address")
    password_hash: str = Field(..., description="bcrypt hash")
    role: Role = Role.STUDENT
    is_active: bool = True

    # Verification and recovery
    is_verified: bool = False
    otp_code: Optional[str] = None
    otp_expires_at: Optional[datetime] = None
    reset_token: Optional[str] = None
    reset_token_expires_at: Optional[datetime] = None

    # OAuth linkage
    auth_provider: AuthProvider = AuthProvider.LOCAL
    google_id: Optional[str] = None

    # Session state
    refresh_token: Optional[str] = None
    last_login: Optional[datetime] = None

    profile: LearnerProfile = Field(default_factory=LearnerProfile)
    stats: UserStats = Field(default_factory=UserStats)
    game_session: GameSession = Field(default_factory=GameSession)

    created_at: datetime
    updated_at: datetime

    def to_public(self) -> "PublicUser":
        return PublicUser(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role,
            is_active=self.is_active,
            is_verified=self.is_verified,
            auth_provider=self.auth_provider,
            profile=self.profile,
            stats=self.stats,
            last_login=self.last_login,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def to_principal(self) -> Principal:
        return Principal(
            id=self.id,
            name=self.name,
            email=self.email,
            role=self.role.value,
            is_active=self.is_active,
            last_login=self.last_login,
            stats=self.stats,
        )


class PublicUser(CamelModel):
    """User as returned by the API (no secrets)."""

    id: str
    name: str
    email: EmailStr
    role: Role
    is_active: bool
    is_verified: bool
    auth_provider: AuthProvider
    profile: LearnerProfile
    stats: UserStats
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class TokenPair(CamelModel):
    """Access + refresh token pair handed to clients."""

    access_token: str
    refresh_token: str


class TokenClaims(BaseModel):
    """
    Verified token claims.

    The raw payload is kept as-is so legacy claim names can still be read.
    """

    payload: dict[str, Any]

    @property
    def token_type(self) -> Optional[str]:
        return self.payload.get("type")


class GoogleProfile(BaseModel):
    """Subset of Google's userinfo response used for sign-in."""

    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    verified_email: bool = False


class AuthResult(CamelModel):
    """User plus freshly issued tokens."""

    user: PublicUser
    tokens: TokenPair


# -----------------------------------------------------------------------------
# Request / response bodies
# -----------------------------------------------------------------------------


class RegisterRequest(CamelModel):
    """Body of POST /register."""

    name: str = Field(..., max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("Name must be at least 2 characters long")
        return value


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class EmailRequest(CamelModel):
    email: EmailStr


class VerifyOtpRequest(CamelModel):
    email: EmailStr
    otp: str = Field(..., min_length=1, max_length=12)


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


class UpdateProfileRequest(CamelModel):
    """Only ``name`` and ``profile`` may be changed by the user."""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    profile: Optional[LearnerProfile] = None


class TokensResponse(CamelModel):
    tokens: TokenPair


class UserResponse(CamelModel):
    user: PublicUser


class PrincipalResponse(CamelModel):
    user: Principal


class Pagination(CamelModel):
    current: int
    total: int
    count: int
    total_records: int


class UserListResponse(CamelModel):
    users: list[PublicUser]
    pagination: Pagination
