"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

Swapping a backend (Supabase instead of the in-memory credential store,
Redis instead of in-process rate-limit counters) only changes the wiring
here, driven by settings.
"""

from datetime import timedelta
from typing import TYPE_CHECKING, Optional

from shared.clock import Clock, utc_now
from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService, IUserRepository
    from modules.auth.oauth import GoogleOAuthClient
    from modules.auth.tokens import TokenService
    from modules.games.interfaces import IGameSessionService
    from modules.ratelimit.limiter import RateLimiter


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: Optional[Settings] = None, clock: Clock = utc_now) -> None:
        self.settings = settings or get_settings()
        self.clock = clock
        self._user_repository: "IUserRepository | None" = None
        self._token_service: "TokenService | None" = None
        self._auth_service: "IAuthService | None" = None
        self._rate_limiter: "RateLimiter | None" = None
        self._game_service: "IGameSessionService | None" = None
        self._google_oauth: "GoogleOAuthClient | None" = None

    @property
    def user_repository(self) -> "IUserRepository":
        """Get the credential store selected by USER_STORE."""
        if self._user_repository is None:
            if self.settings.user_store == "supabase":
                from modules.auth.repository import SupabaseUserRepository
                from shared.database import get_supabase_client
                self._user_repository = SupabaseUserRepository(get_supabase_client())
            else:
                from modules.auth.repository import InMemoryUserRepository
                self._user_repository = InMemoryUserRepository(clock=self.clock)
        return self._user_repository

    @property
    def token_service(self) -> "TokenService":
        """Get the token service instance."""
        if self._token_service is None:
            from modules.auth.tokens import TokenService
            self._token_service = TokenService(self.settings.jwt_secret, clock=self.clock)
        return self._token_service

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            self._auth_service = AuthService(
                repository=self.user_repository,
                tokens=self.token_service,
                settings=self.settings,
                clock=self.clock,
            )
        return self._auth_service

    @property
    def rate_limiter(self) -> "RateLimiter":
        """Get the rate limiter, backed by RATE_LIMIT_BACKEND."""
        if self._rate_limiter is None:
            from modules.ratelimit.limiter import RateLimiter
            from modules.ratelimit.store import InMemoryRateLimitStore, RedisRateLimitStore

            window = self.settings.rate_limit_window
            if self.settings.rate_limit_backend == "redis":
                store = RedisRateLimitStore.from_url(self.settings.redis_url, ttl_seconds=window)
            else:
                store = InMemoryRateLimitStore()
            self._rate_limiter = RateLimiter(
                store,
                max_attempts=self.settings.rate_limit_max_attempts,
                window=timedelta(seconds=window),
                clock=self.clock,
            )
        return self._rate_limiter

    @property
    def games(self) -> "IGameSessionService":
        """Get the game session service instance."""
        if self._game_service is None:
            from modules.games.service import GameSessionService
            # Game sessions are stored on the user record
            self._game_service = GameSessionService(self.user_repository, clock=self.clock)
        return self._game_service

    @property
    def google_oauth(self) -> "GoogleOAuthClient":
        """Get the Google OAuth client."""
        if self._google_oauth is None:
            from modules.auth.oauth import GoogleOAuthClient
            self._google_oauth = GoogleOAuthClient(
                client_id=self.settings.google_client_id,
                client_secret=self.settings.google_client_secret,
                redirect_uri=self.settings.google_callback_url,
                timeout=self.settings.oauth_timeout,
            )
        return self._google_oauth

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._user_repository = None
        self._token_service = None
        self._auth_service = None
        self._rate_limiter = None
        self._game_service = None
        self._google_oauth = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a pre-built container (tests wire one with a fake clock)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_token_service() -> "TokenService":
    """FastAPI dependency for token service."""
    return get_container().token_service


def get_rate_limiter() -> "RateLimiter":
    """FastAPI dependency for the auth rate limiter."""
    return get_container().rate_limiter


def get_game_service() -> "IGameSessionService":
    """FastAPI dependency for game session service."""
    return get_container().games


def get_google_oauth() -> "GoogleOAuthClient":
    """FastAPI dependency for the Google OAuth client."""
    return get_container().google_oauth


def get_app_settings() -> Settings:
    """FastAPI dependency for the settings the container was built with."""
    return get_container().settings
