"""
Centralized configuration for the TrackWise backend.

All settings are loaded from environment variables with sensible defaults.
Module-specific settings should be namespaced (e.g., RATE_LIMIT_*, SUPABASE_*).
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "TrackWise API"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False

    # CORS settings
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Token signing
    jwt_secret: str = ""

    # Credential store backend: "memory" or "supabase"
    user_store: str = "memory"

    # Supabase
    supabase_url: str = ""
    supabase_anon_key: str = ""
    supabase_service_role_key: str = ""
    supabase_db_url: str = ""

    # Rate limiting
    rate_limit_max_attempts: int = 50
    rate_limit_window: int = 15 * 60  # seconds
    rate_limit_sweep_interval: int = 5 * 60  # seconds
    rate_limit_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # Google OAuth
    google_client_id: str = ""
    google_client_secret: str = ""
    google_callback_url: str = "http://localhost:8000/api/auth/google/callback"
    oauth_timeout: float = 30.0  # seconds

    # Frontend URLs (for redirects)
    frontend_url: str = "http://localhost:5173"

    # Account flows
    require_email_verification: bool = False
    bcrypt_rounds: int = 12
    otp_ttl_minutes: int = 10
    reset_token_ttl_minutes: int = 10


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
