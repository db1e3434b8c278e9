"""
Authentication module.

Handles token issue/verification, the account lifecycle, and the
credential store.

Public API:
- IAuthService, IUserRepository, INotifier: Interfaces
- TokenService: JWT issue/verify
- User, PublicUser, TokenPair, TokenClaims: Models
- Auth exceptions: ExpiredTokenError, InvalidRefreshTokenError, etc.
"""

from .interfaces import IAuthService, IUserRepository, INotifier
from .models import (
    User,
    PublicUser,
    LearnerProfile,
    Role,
    AuthProvider,
    TokenType,
    TokenPair,
    TokenClaims,
    GoogleProfile,
    AuthResult,
)
from .tokens import TokenService
from .claims import extract_user_id
from .exceptions import (
    MissingTokenError,
    EmptyTokenError,
    ExpiredTokenError,
    InvalidTokenFormatError,
    VerificationFailedError,
    InvalidTokenTypeError,
    InvalidTokenPayloadError,
    UserNotFoundError,
    AccountDeactivatedError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    InsufficientPermissionsError,
    OwnershipRequiredError,
    EmailNotVerifiedError,
    UserAlreadyExistsError,
    OAuthError,
)

__all__ = [
    # Interfaces
    "IAuthService",
    "IUserRepository",
    "INotifier",
    # Models
    "User",
    "PublicUser",
    "LearnerProfile",
    "Role",
    "AuthProvider",
    "TokenType",
    "TokenPair",
    "TokenClaims",
    "GoogleProfile",
    "AuthResult",
    # Tokens
    "TokenService",
    "extract_user_id",
    # Exceptions
    "MissingTokenError",
    "EmptyTokenError",
    "ExpiredTokenError",
    "InvalidTokenFormatError",
    "VerificationFailedError",
    "InvalidTokenTypeError",
    "InvalidTokenPayloadError",
    "UserNotFoundError",
    "AccountDeactivatedError",
    "InvalidCredentialsError",
    "InvalidRefreshTokenError",
    "InsufficientPermissionsError",
    "OwnershipRequiredError",
    "EmailNotVerifiedError",
    "UserAlreadyExistsError",
    "OAuthError",
]
