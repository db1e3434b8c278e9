"""
JWT token service.

Issues access/refresh token pairs and verifies tokens. Both token types are
signed with the same secret, so every token carries a ``type`` claim plus
issuer and audience claims, and callers must check the type they expect.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional
import jwt

from shared.clock import Clock, utc_now
from shared.exceptions import ConfigurationError

from .models import TokenClaims, TokenPair, TokenType
from .exceptions import (
    ExpiredTokenError,
    InvalidTokenFormatError,
    VerificationFailedError,
)

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ISSUER = "trackwise-api"
AUDIENCE = "trackwise-app"
ACCESS_TOKEN_TTL = timedelta(minutes=15)
REFRESH_TOKEN_TTL = timedelta(days=7)

# Decode failures that mean the token itself is bad, as opposed to
# failures of the verification process
_FORMAT_ERRORS = (
    jwt.DecodeError,
    jwt.InvalidAudienceError,
    jwt.InvalidIssuerError,
    jwt.MissingRequiredClaimError,
)


class TokenService:
    """
    Issue and verify signed bearer tokens.

    Expiry is checked against the injected clock rather than the system
    time, so callers that simulate time see consistent results.
    """

    def __init__(self, secret: str, clock: Clock = utc_now):
        self._secret = secret
        self._clock = clock

    def _require_secret(self) -> str:
        if not self._secret:
            logger.error("Cannot sign tokens: JWT_SECRET is not set")
            raise ConfigurationError(
                "Server authentication not configured",
                code="AUTH_NOT_CONFIGURED",
            )
        return self._secret

    def _encode(self, user_id: str, token_type: TokenType, ttl: timedelta, now: datetime) -> str:
        payload = {
            "userId": user_id,
            "type": token_type.value,
            "iss": ISSUER,
            "aud": AUDIENCE,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            # Two tokens issued for the same user in the same second must differ
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._require_secret(), algorithm=ALGORITHM)

    def issue_token_pair(self, user_id: str) -> TokenPair:
        """Issue a 15-minute access token and a 7-day refresh token."""
        now = self._clock()
        return TokenPair(
            access_token=self._encode(user_id, TokenType.ACCESS, ACCESS_TOKEN_TTL, now),
            refresh_token=self._encode(user_id, TokenType.REFRESH, REFRESH_TOKEN_TTL, now),
        )

    def verify(self, token: Optional[str]) -> TokenClaims:
        """
        Verify a token's signature, issuer, audience and expiry.

        Raises:
            ExpiredTokenError: Token is past its expiry
            InvalidTokenFormatError: Structure, signature, issuer or audience invalid
            VerificationFailedError: Any other verification failure
        """
        if not self._secret:
            raise VerificationFailedError("Server authentication not configured")
        if not token:
            raise InvalidTokenFormatError()

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                audience=AUDIENCE,
                issuer=ISSUER,
                options={
                    "require": ["exp"],
                    # Time-based claims are checked against our clock below
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except _FORMAT_ERRORS as e:
            raise InvalidTokenFormatError(f"Invalid token format: {e}")
        except jwt.InvalidTokenError as e:
            raise VerificationFailedError(f"Token verification failed: {e}")

        try:
            expires_at = int(payload["exp"])
        except (TypeError, ValueError):
            raise InvalidTokenFormatError("Invalid token format: exp must be an integer")

        if self._clock().timestamp() >= expires_at:
            raise ExpiredTokenError()

        return TokenClaims(payload=payload)
