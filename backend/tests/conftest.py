"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
a controllable clock, settings for the in-memory backends, a service
container wired to both, and helpers for minting tokens and registering
users through the API.
"""

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

import jwt  # PyJWT
import pytest
from fastapi.testclient import TestClient

from api import app
from api.dependencies import ServiceContainer, reset_container, set_container
from shared.config import Settings
from modules.auth.models import Role, User
from modules.auth.passwords import hash_password
from modules.auth.tokens import ALGORITHM, AUDIENCE, ISSUER


# Test JWT secret (only for testing; long enough for HS256 key checks)
TEST_JWT_SECRET = "test-secret-key-for-testing-only-0123456789"

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings for in-memory backends, ignoring any local .env file."""
    return Settings(
        _env_file=None,
        jwt_secret=TEST_JWT_SECRET,
        user_store="memory",
        rate_limit_backend="memory",
        bcrypt_rounds=4,
        google_client_id="test-client-id",
        google_client_secret="test-client-secret",
        frontend_url="http://localhost:5173",
    )


@pytest.fixture
def container(settings: Settings, clock: FakeClock):
    """Service container installed as the app's container for one test."""
    container = ServiceContainer(settings=settings, clock=clock)
    set_container(container)
    yield container
    reset_container()


@pytest.fixture(autouse=True)
def reset_container_singleton():
    """Never let one test's container leak into the next."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def client(container: ServiceContainer) -> TestClient:
    """API client bound to the test container."""
    return TestClient(app)


@pytest.fixture
def make_token(clock: FakeClock) -> Callable[..., str]:
    """
    Mint tokens directly, including ones the service would never issue.

    Extra keyword arguments are merged into the payload; pass a value of
    None to drop a claim.
    """

    def _make_token(
        uid: Optional[str] = "test-user-123",
        token_type: Optional[str] = "access",
        expires_in: timedelta = timedelta(minutes=15),
        secret: str = TEST_JWT_SECRET,
        **claims: Any,
    ) -> str:
        now = clock()
        payload: dict[str, Any] = {
            "userId": uid,
            "type": token_type,
            "iss": ISSUER,
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int((now + expires_in).timestamp()),
        }
        payload.update(claims)
        payload = {key: value for key, value in payload.items() if value is not None}
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    return _make_token


@pytest.fixture
def make_user(clock: FakeClock) -> Callable[..., User]:
    """Build a stored-user model with a real (cheap) bcrypt hash."""

    def _make_user(
        email: str = "ada@example.com",
        password: str = "secret123",
        role: Role = Role.STUDENT,
        **fields: Any,
    ) -> User:
        now = clock()
        values: dict[str, Any] = {
            "id": str(uuid.uuid4()),
            "name": "Ada Lovelace",
            "email": email,
            "password_hash": hash_password(password, rounds=4),
            "role": role,
            "created_at": now,
            "updated_at": now,
        }
        values.update(fields)
        return User(**values)

    return _make_user


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict[str, Any]]:
    """Register a user through the API and return the response ``data``."""

    def _register(
        name: str = "Ada Lovelace",
        email: str = "ada@example.com",
        password: str = "secret123",
    ) -> dict[str, Any]:
        response = client.post(
            "/api/auth/register",
            json={"name": name, "email": email, "password": password},
        )
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _register


@pytest.fixture
def promote(container: ServiceContainer) -> Callable[[str], None]:
    """Make a stored user an admin."""

    def _promote(user_id: str) -> None:
        asyncio.run(container.user_repository.update(user_id, {"role": Role.ADMIN}))

    return _promote


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Build Authorization headers for a token."""
    return bearer
