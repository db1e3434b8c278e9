"""
Authentication module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. This enables testing with in-memory stores and swapping
the credential store backend.
"""

from typing import Any, Protocol, Optional, runtime_checkable

from shared.models import Principal
from modules.games.models import GameSession

from .models import AuthResult, GoogleProfile, LearnerProfile, PublicUser, TokenPair, User


@runtime_checkable
class IUserRepository(Protocol):
    """
    Credential store.

    Single-document updates are atomic; there is no optimistic concurrency
    control, so concurrent updates to one user are last-write-wins.
    """

    async def get_by_id(self, user_id: str) -> Optional[User]:
        ...

    async def get_by_email(self, email: str) -> Optional[User]:
        """Look up a user by email, case-insensitively."""
        ...

    async def get_by_google_id(self, google_id: str) -> Optional[User]:
        ...

    async def get_by_reset_token(self, token: str) -> Optional[User]:
        ...

    async def find_by_refresh_token(self, user_id: str, refresh_token: str) -> Optional[User]:
        """
        Find an active user whose stored refresh token is exactly ``refresh_token``.

        A superseded refresh token never matches, even if it has not expired.
        """
        ...

    async def create(self, user: User) -> User:
        """
        Insert a new user.

        Raises:
            UserAlreadyExistsError: If the email (or Google id) is taken
        """
        ...

    async def update(self, user_id: str, changes: dict[str, Any]) -> Optional[User]:
        """
        Apply field changes to a user.

        Returns:
            The updated user, or None if the user does not exist
        """
        ...

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[User], int]:
        """List active users, newest first, with the total match count."""
        ...

    async def get_game_session(self, user_id: str) -> Optional[GameSession]:
        ...

    async def save_game_session(self, user_id: str, session: GameSession) -> None:
        ...


@runtime_checkable
class INotifier(Protocol):
    """Delivers one-time codes and reset links to users."""

    async def send_verification_code(self, email: str, code: str) -> None:
        ...

    async def send_password_reset(self, email: str, token: str) -> None:
        ...


@runtime_checkable
class IAuthService(Protocol):
    """
    Interface for authentication operations.

    This protocol defines the contract that the auth module exposes
    to the API layer. Implementations must provide all these methods.
    """

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        """
        Create a local account and sign it in.

        Raises:
            UserAlreadyExistsError: If the email is taken
        """
        ...

    async def login(self, email: str, password: str) -> AuthResult:
        """
        Sign in with email and password.

        Raises:
            InvalidCredentialsError: Unknown, inactive, or wrong password
            EmailNotVerifiedError: If verification is required and missing
        """
        ...

    async def refresh(self, refresh_token: str) -> TokenPair:
        """
        Exchange a refresh token for a new pair, invalidating the old one.

        Raises:
            InvalidTokenTypeError: If an access token is presented
            InvalidRefreshTokenError: Expired, malformed or superseded token
        """
        ...

    async def logout(self, user_id: str) -> None:
        """Invalidate the user's stored refresh token."""
        ...

    async def resolve_principal(self, user_id: str) -> Principal:
        """
        Load the principal for an authenticated request.

        Raises:
            UserNotFoundError: If the user does not exist
            AccountDeactivatedError: If the account is inactive
        """
        ...

    async def verify_otp(self, email: str, otp: str) -> None:
        ...

    async def resend_otp(self, email: str) -> None:
        ...

    async def forgot_password(self, email: str) -> None:
        ...

    async def reset_password(self, token: str, new_password: str) -> None:
        ...

    async def get_profile(self, user_id: str) -> PublicUser:
        ...

    async def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        profile: Optional[LearnerProfile] = None,
    ) -> PublicUser:
        ...

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[PublicUser], int]:
        ...

    async def toggle_user_active(self, actor_id: str, user_id: str) -> PublicUser:
        ...

    async def login_with_google(self, profile: GoogleProfile) -> AuthResult:
        """
        Sign in with a Google profile, linking or creating the account.

        Raises:
            OAuthError: If Google supplied no email
        """
        ...
