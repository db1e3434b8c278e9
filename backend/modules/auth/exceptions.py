"""
Authentication module exceptions.

These exceptions are raised by the auth module and the request
authenticator. Each carries a stable machine-readable code so clients can
branch on it (e.g. re-login on TOKEN_EXPIRED).
"""

from shared.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


class MissingTokenError(AuthenticationError):
    """Raised when no bearer token is provided."""

    def __init__(self, message: str = "No valid token provided."):
        super().__init__(message, code="NO_TOKEN")


class EmptyTokenError(AuthenticationError):
    """Raised when the bearer scheme is present but the token is empty."""

    def __init__(self, message: str = "Token is empty."):
        super().__init__(message, code="EMPTY_TOKEN")


class ExpiredTokenError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, message: str = "Token expired."):
        super().__init__(message, code="TOKEN_EXPIRED")


class InvalidTokenFormatError(AuthenticationError):
    """Raised when a JWT token is malformed or its signature does not match."""

    def __init__(self, message: str = "Invalid token format."):
        super().__init__(message, code="INVALID_TOKEN")


class VerificationFailedError(AuthenticationError):
    """Raised when token verification fails for any other reason."""

    def __init__(self, message: str = "Token verification failed."):
        super().__init__(message, code="VERIFICATION_FAILED")


class InvalidTokenTypeError(AuthenticationError):
    """Raised when a token of the wrong type is presented."""

    def __init__(self, expected: str = "access"):
        super().__init__(
            f"{expected.capitalize()} token required.",
            code="INVALID_TOKEN_TYPE",
            details={"expected": expected},
        )


class InvalidTokenPayloadError(AuthenticationError):
    """Raised when token claims carry no user identifier."""

    def __init__(self, message: str = "Token payload does not identify a user."):
        super().__init__(message, code="INVALID_TOKEN_PAYLOAD")


class UserNotFoundError(AuthenticationError):
    """Raised when the authenticated user doesn't exist in the credential store."""

    def __init__(self, message: str = "User not found."):
        super().__init__(message, code="USER_NOT_FOUND")


class AccountDeactivatedError(AuthenticationError):
    """Raised when the user's account has been soft-disabled."""

    def __init__(self, message: str = "Account deactivated."):
        super().__init__(message, code="ACCOUNT_DEACTIVATED")


class InvalidCredentialsError(AuthenticationError):
    """Raised when email/password do not match an active account."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, code="INVALID_CREDENTIALS")


class InvalidRefreshTokenError(AuthenticationError):
    """Raised when a refresh token is expired, malformed or superseded."""

    def __init__(self, message: str = "Invalid refresh token"):
        super().__init__(message, code="INVALID_REFRESH_TOKEN")


class InsufficientPermissionsError(AuthorizationError):
    """Raised when user lacks required permissions."""

    def __init__(self, required_role: str, user_role: str):
        super().__init__(
            f"{required_role.capitalize()} access required.",
            code="INSUFFICIENT_PERMISSIONS",
            details={"required_role": required_role, "user_role": user_role},
        )


class OwnershipRequiredError(AuthorizationError):
    """Raised when a user accesses another user's resource."""

    def __init__(self, message: str = "Access denied."):
        super().__init__(message, code="OWNERSHIP_REQUIRED")


class EmailNotVerifiedError(AuthorizationError):
    """Raised when an unverified account attempts a verified-only flow."""

    def __init__(self, message: str = "Email not verified. Please verify before login."):
        super().__init__(message, code="EMAIL_NOT_VERIFIED")


class UserAlreadyExistsError(ConflictError):
    """Raised when registering an email that is already taken."""

    def __init__(self, email: str):
        super().__init__(
            "User already exists with this email",
            code="USER_EXISTS",
            details={"email": email},
        )


class AccountNotFoundError(NotFoundError):
    """Raised when an account lookup by email or id finds nothing."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, code="USER_NOT_FOUND")


class AlreadyVerifiedError(ValidationError):
    """Raised when verifying an account that is already verified."""

    def __init__(self, message: str = "Email already verified"):
        super().__init__(message, code="ALREADY_VERIFIED")


class OTPExpiredError(ValidationError):
    """Raised when the one-time code is missing or past its expiry."""

    def __init__(self, message: str = "OTP expired. Request a new one."):
        super().__init__(message, code="OTP_EXPIRED")


class InvalidOTPError(ValidationError):
    """Raised when the one-time code does not match."""

    def __init__(self, message: str = "Invalid OTP"):
        super().__init__(message, code="INVALID_OTP")


class InvalidResetTokenError(ValidationError):
    """Raised when a password reset token is unknown or expired."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, code="INVALID_RESET_TOKEN")


class SelfDeactivationError(ValidationError):
    """Raised when an admin tries to toggle their own account."""

    def __init__(self, message: str = "Cannot deactivate your own account"):
        super().__init__(message, code="SELF_DEACTIVATION")


class OAuthError(ExternalServiceError):
    """Raised when the OAuth provider exchange fails or returns unusable data."""

    def __init__(self, message: str, provider: str = "google"):
        super().__init__(message, service=provider, code="OAUTH_FAILED")
