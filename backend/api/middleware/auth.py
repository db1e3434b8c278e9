"""
Bearer token authentication.

Validates access tokens issued by the token service, loads the user they
name and exposes the resulting Principal to route handlers. Also provides
the role, ownership and rate-limit gates used by the auth routes.
"""

import logging
from typing import Any, Optional

from fastapi import Depends, Request

from shared.exceptions import AuthenticationError
from shared.models import Principal
from modules.auth.claims import extract_user_id
from modules.auth.interfaces import IAuthService
from modules.auth.models import Role, TokenType
from modules.auth.tokens import TokenService
from modules.auth.exceptions import (
    EmptyTokenError,
    InsufficientPermissionsError,
    InvalidTokenPayloadError,
    InvalidTokenTypeError,
    MissingTokenError,
    OwnershipRequiredError,
)
from modules.ratelimit.limiter import RateLimiter, client_key

from ..dependencies import get_auth_service, get_rate_limiter, get_token_service

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"


def request_client_key(request: Request) -> str:
    """Rate limiter key for the calling client."""
    host = request.client.host if request.client else None
    return client_key(host, request.headers.get("user-agent"))


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header value.

    Raises:
        MissingTokenError: Header absent or not a Bearer credential
        EmptyTokenError: Bearer scheme with nothing after it
    """
    if authorization is None:
        raise MissingTokenError()
    if authorization.strip() == BEARER_SCHEME:
        raise EmptyTokenError()
    if not authorization.startswith(f"{BEARER_SCHEME} "):
        raise MissingTokenError()
    token = authorization[len(BEARER_SCHEME) + 1:].strip()
    if not token:
        raise EmptyTokenError()
    return token


def verify_access_token(tokens: TokenService, authorization: Optional[str]) -> dict[str, Any]:
    """
    Verify the bearer credential and return its claims.

    Raises:
        AuthenticationError: Missing, empty, invalid, expired or non-access token
    """
    claims = tokens.verify(extract_bearer_token(authorization))

    # Tokens without a type claim predate typed tokens and are accepted
    if claims.token_type is not None and claims.token_type != TokenType.ACCESS.value:
        raise InvalidTokenTypeError(expected=TokenType.ACCESS.value)
    return claims.payload


async def get_current_principal(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    auth: IAuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> Principal:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(principal: Principal = Depends(get_current_principal)):
            return {"user_id": principal.id}
    """
    try:
        payload = verify_access_token(tokens, request.headers.get("authorization"))
    except AuthenticationError as e:
        # Token failures count towards the client's rate limit
        await limiter.record_failure(request_client_key(request))
        logger.info(f"Rejected bearer credential: {e.code}")
        raise

    user_id = extract_user_id(payload)
    if user_id is None:
        raise InvalidTokenPayloadError()

    principal = await auth.resolve_principal(user_id)
    request.state.principal = principal
    return principal


async def get_optional_principal(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
    auth: IAuthService = Depends(get_auth_service),
) -> Optional[Principal]:
    """
    Dependency that optionally extracts the principal if authenticated.

    Use this for endpoints that work with or without authentication.
    Never raises for credential problems and never counts failures.
    """
    authorization = request.headers.get("authorization")
    if authorization is None:
        return None

    try:
        user_id = extract_user_id(verify_access_token(tokens, authorization))
        if user_id is None:
            return None
        principal = await auth.resolve_principal(user_id)
    except AuthenticationError:
        return None

    request.state.principal = principal
    return principal


def require_role(role: Role):
    """
    Build a dependency that admits only principals with ``role``.

    Usage:
        @router.get("/admin", dependencies=[Depends(require_role(Role.ADMIN))])
    """

    async def check_role(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role != role.value:
            logger.info(f"User {principal.id} ({principal.role}) denied {role.value}-only route")
            raise InsufficientPermissionsError(required_role=role.value, user_role=principal.role)
        return principal

    return check_role


require_admin = require_role(Role.ADMIN)
require_student = require_role(Role.STUDENT)


async def require_ownership(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    """
    Dependency for routes with a ``{user_id}`` path parameter.

    Admins may access any user; everyone else only themselves.
    """
    if principal.is_admin or principal.id == user_id:
        return principal
    raise OwnershipRequiredError()


async def rate_limit_auth(
    request: Request,
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> str:
    """
    Reject clients that are over the failed-attempt limit.

    Returns the client key so the route can record its own failures.
    """
    key = request_client_key(request)
    await limiter.check(key)
    return key


# Type aliases for cleaner route definitions
RequireAuth = Depends(get_current_principal)
OptionalAuth = Depends(get_optional_principal)
RequireAdmin = Depends(require_admin)
RateLimited = Depends(rate_limit_auth)
