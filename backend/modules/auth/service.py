"""
Authentication service implementation.

Owns the account lifecycle: registration, email verification, password
login, refresh-token rotation, logout, password recovery, profile updates,
admin account management and Google sign-in.
"""

import asyncio
import hmac
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Any, Optional

from shared.clock import Clock, utc_now
from shared.config import Settings, get_settings
from shared.models import Principal

from .claims import extract_user_id
from .interfaces import INotifier, IUserRepository
from .models import (
    AuthProvider,
    AuthResult,
    GoogleProfile,
    LearnerProfile,
    PublicUser,
    TokenPair,
    TokenType,
    User,
)
from .notifier import LoggingNotifier
from .passwords import hash_password, unusable_password, verify_password
from .tokens import TokenService
from .exceptions import (
    AccountDeactivatedError,
    AccountNotFoundError,
    AlreadyVerifiedError,
    EmailNotVerifiedError,
    ExpiredTokenError,
    InvalidCredentialsError,
    InvalidOTPError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    InvalidTokenFormatError,
    InvalidTokenTypeError,
    OAuthError,
    OTPExpiredError,
    SelfDeactivationError,
    UserAlreadyExistsError,
    UserNotFoundError,
    VerificationFailedError,
)

logger = logging.getLogger(__name__)


def _generate_otp() -> str:
    """Six-digit one-time code."""
    return str(100000 + secrets.randbelow(900000))


def _normalize_email(email: str) -> str:
    return email.strip().lower()


class AuthService:
    """
    Implementation of the authentication service.

    Stores exactly one refresh token per user: issuing a new pair overwrites
    the stored value, which invalidates the previous refresh token.
    """

    def __init__(
        self,
        repository: IUserRepository,
        tokens: TokenService,
        notifier: Optional[INotifier] = None,
        settings: Optional[Settings] = None,
        clock: Clock = utc_now,
    ):
        self._users = repository
        self._tokens = tokens
        self._notifier = notifier or LoggingNotifier()
        self._settings = settings or get_settings()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _hash(self, password: str) -> str:
        # bcrypt is CPU-bound; keep it off the event loop
        return await asyncio.to_thread(hash_password, password, self._settings.bcrypt_rounds)

    async def _check_password(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(verify_password, password, password_hash)

    async def _update(self, user_id: str, changes: dict[str, Any]) -> User:
        user = await self._users.update(user_id, changes)
        if user is None:
            raise AccountNotFoundError()
        return user

    async def _sign_in(self, user: User) -> AuthResult:
        """Issue a token pair and persist the refresh token."""
        tokens = self._tokens.issue_token_pair(user.id)
        user = await self._update(
            user.id,
            {"refresh_token": tokens.refresh_token, "last_login": self._clock()},
        )
        return AuthResult(user=user.to_public(), tokens=tokens)

    async def _notify_verification(self, user: User, code: str) -> None:
        try:
            await self._notifier.send_verification_code(user.email, code)
        except Exception:
            # Delivery failure must not undo the registration
            logger.exception(f"Failed to deliver verification code to {user.email}")

    # -------------------------------------------------------------------------
    # Registration and verification
    # -------------------------------------------------------------------------

    async def register(self, name: str, email: str, password: str) -> AuthResult:
        email = _normalize_email(email)
        if await self._users.get_by_email(email) is not None:
            raise UserAlreadyExistsError(email)

        now = self._clock()
        code = _generate_otp()
        user = await self._users.create(
            User(
                id=str(uuid.uuid4()),
                name=name.strip(),
                email=email,
                password_hash=await self._hash(password),
                is_verified=False,
                otp_code=code,
                otp_expires_at=now + timedelta(minutes=self._settings.otp_ttl_minutes),
                last_login=now,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"User registered: {user.email}")

        await self._notify_verification(user, code)
        return await self._sign_in(user)

    async def verify_otp(self, email: str, otp: str) -> None:
        user = await self._users.get_by_email(_normalize_email(email))
        if user is None:
            raise AccountNotFoundError()
        if user.is_verified:
            raise AlreadyVerifiedError("Already verified")
        if not user.otp_code or not user.otp_expires_at or user.otp_expires_at < self._clock():
            raise OTPExpiredError()
        if not hmac.compare_digest(user.otp_code, otp.strip()):
            raise InvalidOTPError()

        await self._update(user.id, {"is_verified": True, "otp_code": None, "otp_expires_at": None})
        logger.info(f"Email verified: {user.email}")

    async def resend_otp(self, email: str) -> None:
        user = await self._users.get_by_email(_normalize_email(email))
        if user is None:
            raise AccountNotFoundError()
        if user.is_verified:
            raise AlreadyVerifiedError()

        code = _generate_otp()
        expires_at = self._clock() + timedelta(minutes=self._settings.otp_ttl_minutes)
        user = await self._update(user.id, {"otp_code": code, "otp_expires_at": expires_at})
        await self._notify_verification(user, code)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> AuthResult:
        user = await self._users.get_by_email(_normalize_email(email))
        if user is None or not user.is_active:
            raise InvalidCredentialsError()
        if not await self._check_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if self._settings.require_email_verification and not user.is_verified:
            raise EmailNotVerifiedError()

        logger.info(f"User logged in: {user.email}")
        return await self._sign_in(user)

    async def refresh(self, refresh_token: str) -> TokenPair:
        try:
            claims = self._tokens.verify(refresh_token)
        except (ExpiredTokenError, InvalidTokenFormatError, VerificationFailedError):
            raise InvalidRefreshTokenError("Invalid or expired refresh token")

        if claims.token_type != TokenType.REFRESH.value:
            raise InvalidTokenTypeError(expected=TokenType.REFRESH.value)

        user_id = extract_user_id(claims.payload)
        if user_id is None:
            raise InvalidRefreshTokenError()

        # Matching on the stored value rejects superseded tokens
        user = await self._users.find_by_refresh_token(user_id, refresh_token)
        if user is None:
            logger.warning(f"Rejected superseded or revoked refresh token for user {user_id}")
            raise InvalidRefreshTokenError()

        tokens = self._tokens.issue_token_pair(user.id)
        await self._update(
            user.id,
            {"refresh_token": tokens.refresh_token, "last_login": self._clock()},
        )
        return tokens

    async def logout(self, user_id: str) -> None:
        await self._users.update(user_id, {"refresh_token": None})
        logger.info(f"User logged out: {user_id}")

    async def resolve_principal(self, user_id: str) -> Principal:
        user = await self._users.get_by_id(user_id)
        if user is None:
            logger.warning(f"Token refers to unknown user {user_id}")
            raise UserNotFoundError()
        if not user.is_active:
            raise AccountDeactivatedError()
        return user.to_principal()

    # -------------------------------------------------------------------------
    # Password recovery
    # -------------------------------------------------------------------------

    async def forgot_password(self, email: str) -> None:
        user = await self._users.get_by_email(_normalize_email(email))
        if user is None:
            raise AccountNotFoundError()
        if not user.is_verified:
            raise EmailNotVerifiedError("Email not verified")

        token = secrets.token_hex(20)
        expires_at = self._clock() + timedelta(minutes=self._settings.reset_token_ttl_minutes)
        await self._update(user.id, {"reset_token": token, "reset_token_expires_at": expires_at})

        try:
            await self._notifier.send_password_reset(user.email, token)
        except Exception:
            logger.exception(f"Failed to deliver password reset to {user.email}")

    async def reset_password(self, token: str, new_password: str) -> None:
        user = await self._users.get_by_reset_token(token)
        if user is None or user.reset_token_expires_at is None:
            raise InvalidResetTokenError()
        if user.reset_token_expires_at <= self._clock():
            raise InvalidResetTokenError()

        await self._update(
            user.id,
            {
                "password_hash": await self._hash(new_password),
                "reset_token": None,
                "reset_token_expires_at": None,
                # Sign out everywhere
                "refresh_token": None,
            },
        )
        logger.info(f"Password reset for {user.email}")

    # -------------------------------------------------------------------------
    # Profiles and administration
    # -------------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> PublicUser:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise AccountNotFoundError()
        return user.to_public()

    async def update_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        profile: Optional[LearnerProfile] = None,
    ) -> PublicUser:
        changes: dict[str, Any] = {}
        if name is not None:
            changes["name"] = name.strip()
        if profile is not None:
            changes["profile"] = profile
        if not changes:
            return await self.get_profile(user_id)
        return (await self._update(user_id, changes)).to_public()

    async def list_users(
        self,
        page: int = 1,
        limit: int = 10,
        role: Optional[str] = None,
        search: Optional[str] = None,
    ) -> tuple[list[PublicUser], int]:
        users, total = await self._users.list_users(page=page, limit=limit, role=role, search=search)
        return [user.to_public() for user in users], total

    async def toggle_user_active(self, actor_id: str, user_id: str) -> PublicUser:
        if actor_id == user_id:
            raise SelfDeactivationError()
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise AccountNotFoundError()

        user = await self._update(user_id, {"is_active": not user.is_active})
        logger.info(f"User {user.email} {'activated' if user.is_active else 'deactivated'} by {actor_id}")
        return user.to_public()

    # -------------------------------------------------------------------------
    # Google sign-in
    # -------------------------------------------------------------------------

    async def login_with_google(self, profile: GoogleProfile) -> AuthResult:
        if not profile.id:
            raise OAuthError("Google did not return an account id")

        user = await self._users.get_by_google_id(profile.id)
        if user is not None:
            if not user.is_active:
                raise AccountDeactivatedError()
            return await self._sign_in(user)

        if not profile.email:
            raise OAuthError("No email provided by Google")
        email = _normalize_email(profile.email)

        user = await self._users.get_by_email(email)
        if user is not None:
            if not user.is_active:
                raise AccountDeactivatedError()
            # Only an address Google has verified may claim an existing account
            if not profile.verified_email:
                logger.warning(f"Refused to link unverified Google email to {user.email}")
                raise OAuthError("Google account email is not verified")
            user = await self._update(
                user.id,
                {
                    "google_id": profile.id,
                    "auth_provider": AuthProvider.GOOGLE,
                    "is_verified": True,
                },
            )
            logger.info(f"Linked Google account to existing user {user.email}")
            return await self._sign_in(user)

        now = self._clock()
        user = await self._users.create(
            User(
                id=str(uuid.uuid4()),
                name=(profile.name or "Google User").strip()[:50],
                email=email,
                password_hash=await self._hash(unusable_password()),
                is_verified=profile.verified_email,
                auth_provider=AuthProvider.GOOGLE,
                google_id=profile.id,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info(f"Created user from Google profile: {user.email}")
        return await self._sign_in(user)
