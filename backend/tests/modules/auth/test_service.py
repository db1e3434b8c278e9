"""Tests for AuthService against the in-memory credential store."""

import re
from unittest.mock import AsyncMock

import pytest

from modules.auth.interfaces import IAuthService
from modules.auth.models import AuthProvider, GoogleProfile, LearnerProfile, Role
from modules.auth.repository import InMemoryUserRepository
from modules.auth.service import AuthService
from modules.auth.tokens import TokenService
from modules.auth.exceptions import (
    AccountDeactivatedError,
    AccountNotFoundError,
    AlreadyVerifiedError,
    EmailNotVerifiedError,
    InvalidCredentialsError,
    InvalidOTPError,
    InvalidRefreshTokenError,
    InvalidResetTokenError,
    InvalidTokenTypeError,
    OAuthError,
    OTPExpiredError,
    SelfDeactivationError,
    UserAlreadyExistsError,
    UserNotFoundError,
)


class RecordingNotifier:
    def __init__(self):
        self.codes: dict[str, str] = {}
        self.resets: dict[str, str] = {}

    async def send_verification_code(self, email: str, code: str) -> None:
        self.codes[email] = code

    async def send_password_reset(self, email: str, token: str) -> None:
        self.resets[email] = token


@pytest.fixture
def repository(clock) -> InMemoryUserRepository:
    return InMemoryUserRepository(clock=clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(repository, notifier, settings, clock) -> AuthService:
    return AuthService(
        repository=repository,
        tokens=TokenService(settings.jwt_secret, clock=clock),
        notifier=notifier,
        settings=settings,
        clock=clock,
    )


async def register(service: AuthService, email: str = "ada@example.com", password: str = "secret123"):
    return await service.register("Ada Lovelace", email, password)


class TestInterface:
    def test_service_satisfies_protocol(self, service):
        assert isinstance(service, IAuthService)


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_creates_unverified_student(self, service, repository, notifier):
        result = await register(service)

        assert result.user.email == "ada@example.com"
        assert result.user.role == Role.STUDENT
        assert result.user.is_verified is False
        assert result.user.auth_provider == AuthProvider.LOCAL

        stored = await repository.get_by_email("ada@example.com")
        assert stored.password_hash != "secret123"
        assert stored.refresh_token == result.tokens.refresh_token
        assert re.fullmatch(r"\d{6}", stored.otp_code)
        assert notifier.codes["ada@example.com"] == stored.otp_code

    @pytest.mark.asyncio
    async def test_register_normalizes_email_and_name(self, service):
        result = await service.register("  Ada  ", "  Ada@Example.COM ", "secret123")
        assert result.user.email == "ada@example.com"
        assert result.user.name == "Ada"

    @pytest.mark.asyncio
    async def test_duplicate_email_is_case_insensitive(self, service):
        await register(service)
        with pytest.raises(UserAlreadyExistsError) as exc_info:
            await register(service, email="ADA@example.com")
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_fail_registration(self, service, notifier):
        notifier.send_verification_code = AsyncMock(side_effect=ConnectionError("smtp down"))
        result = await register(service)
        assert result.tokens.access_token


class TestVerifyOtp:
    @pytest.mark.asyncio
    async def test_verify(self, service, repository, notifier):
        await register(service)
        await service.verify_otp("ada@example.com", notifier.codes["ada@example.com"])

        stored = await repository.get_by_email("ada@example.com")
        assert stored.is_verified is True
        assert stored.otp_code is None
        assert stored.otp_expires_at is None

    @pytest.mark.asyncio
    async def test_wrong_code(self, service, notifier):
        await register(service)
        wrong = "000000" if notifier.codes["ada@example.com"] != "000000" else "111111"
        with pytest.raises(InvalidOTPError):
            await service.verify_otp("ada@example.com", wrong)

    @pytest.mark.asyncio
    async def test_expired_code(self, service, notifier, clock):
        await register(service)
        clock.advance(minutes=11)
        with pytest.raises(OTPExpiredError):
            await service.verify_otp("ada@example.com", notifier.codes["ada@example.com"])

    @pytest.mark.asyncio
    async def test_already_verified(self, service, notifier):
        await register(service)
        code = notifier.codes["ada@example.com"]
        await service.verify_otp("ada@example.com", code)
        with pytest.raises(AlreadyVerifiedError):
            await service.verify_otp("ada@example.com", code)

    @pytest.mark.asyncio
    async def test_unknown_email(self, service):
        with pytest.raises(AccountNotFoundError) as exc_info:
            await service.verify_otp("nobody@example.com", "123456")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_resend_replaces_code(self, service, repository, notifier, clock):
        await register(service)
        clock.advance(minutes=11)
        await service.resend_otp("ada@example.com")

        stored = await repository.get_by_email("ada@example.com")
        assert stored.otp_code == notifier.codes["ada@example.com"]
        await service.verify_otp("ada@example.com", stored.otp_code)

    @pytest.mark.asyncio
    async def test_resend_when_verified(self, service, notifier):
        await register(service)
        await service.verify_otp("ada@example.com", notifier.codes["ada@example.com"])
        with pytest.raises(AlreadyVerifiedError):
            await service.resend_otp("ada@example.com")


class TestLogin:
    @pytest.mark.asyncio
    async def test_login(self, service, repository, clock):
        await register(service)
        clock.advance(hours=1)
        result = await service.login("ADA@example.com", "secret123")

        stored = await repository.get_by_email("ada@example.com")
        assert stored.refresh_token == result.tokens.refresh_token
        assert stored.last_login == clock.now

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        await register(service)
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.login("ada@example.com", "wrong-password")
        assert exc_info.value.message == "Invalid credentials"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody@example.com", "secret123")

    @pytest.mark.asyncio
    async def test_inactive_user(self, service, repository):
        result = await register(service)
        await repository.update(result.user.id, {"is_active": False})
        with pytest.raises(InvalidCredentialsError):
            await service.login("ada@example.com", "secret123")

    @pytest.mark.asyncio
    async def test_unverified_allowed_by_default(self, service):
        await register(service)
        result = await service.login("ada@example.com", "secret123")
        assert result.user.is_verified is False

    @pytest.mark.asyncio
    async def test_verification_required(self, service, settings):
        settings.require_email_verification = True
        await register(service)
        with pytest.raises(EmailNotVerifiedError) as exc_info:
            await service.login("ada@example.com", "secret123")
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_password_checked_before_verification(self, service, settings):
        settings.require_email_verification = True
        await register(service)
        with pytest.raises(InvalidCredentialsError):
            await service.login("ada@example.com", "wrong-password")

    @pytest.mark.asyncio
    async def test_login_supersedes_previous_refresh_token(self, service):
        registration = await register(service)
        await service.login("ada@example.com", "secret123")
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(registration.tokens.refresh_token)


class TestRefresh:
    @pytest.mark.asyncio
    async def test_rotation(self, service, repository):
        first = await register(service)
        second = await service.refresh(first.tokens.refresh_token)

        assert second.refresh_token != first.tokens.refresh_token
        stored = await repository.get_by_email("ada@example.com")
        assert stored.refresh_token == second.refresh_token

        with pytest.raises(InvalidRefreshTokenError) as exc_info:
            await service.refresh(first.tokens.refresh_token)
        assert exc_info.value.code == "INVALID_REFRESH_TOKEN"

        third = await service.refresh(second.refresh_token)
        assert third.access_token

    @pytest.mark.asyncio
    async def test_access_token_rejected(self, service):
        result = await register(service)
        with pytest.raises(InvalidTokenTypeError):
            await service.refresh(result.tokens.access_token)

    @pytest.mark.asyncio
    async def test_expired_refresh_token(self, service, clock):
        result = await register(service)
        clock.advance(days=7)
        with pytest.raises(InvalidRefreshTokenError) as exc_info:
            await service.refresh(result.tokens.refresh_token)
        assert exc_info.value.message == "Invalid or expired refresh token"

    @pytest.mark.asyncio
    async def test_malformed_refresh_token(self, service):
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh("garbage")

    @pytest.mark.asyncio
    async def test_refresh_for_deactivated_user(self, service, repository):
        result = await register(service)
        await repository.update(result.user.id, {"is_active": False})
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(result.tokens.refresh_token)

    @pytest.mark.asyncio
    async def test_logout_revokes(self, service, repository):
        result = await register(service)
        await service.logout(result.user.id)

        stored = await repository.get_by_id(result.user.id)
        assert stored.refresh_token is None
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(result.tokens.refresh_token)


class TestResolvePrincipal:
    @pytest.mark.asyncio
    async def test_principal(self, service):
        result = await register(service)
        principal = await service.resolve_principal(result.user.id)
        assert principal.id == result.user.id
        assert principal.user_id == result.user.id
        assert principal.role == "student"
        assert principal.is_active is True

    @pytest.mark.asyncio
    async def test_missing_user(self, service):
        with pytest.raises(UserNotFoundError) as exc_info:
            await service.resolve_principal("missing")
        assert exc_info.value.status_code == 401
        assert exc_info.value.details == {}

    @pytest.mark.asyncio
    async def test_deactivated_user(self, service, repository):
        result = await register(service)
        await repository.update(result.user.id, {"is_active": False})
        with pytest.raises(AccountDeactivatedError):
            await service.resolve_principal(result.user.id)


class TestPasswordRecovery:
    async def verified(self, service, notifier):
        result = await register(service)
        await service.verify_otp("ada@example.com", notifier.codes["ada@example.com"])
        return result

    @pytest.mark.asyncio
    async def test_forgot_requires_verified_email(self, service):
        await register(service)
        with pytest.raises(EmailNotVerifiedError):
            await service.forgot_password("ada@example.com")

    @pytest.mark.asyncio
    async def test_forgot_unknown_email(self, service):
        with pytest.raises(AccountNotFoundError):
            await service.forgot_password("nobody@example.com")

    @pytest.mark.asyncio
    async def test_reset_flow(self, service, repository, notifier):
        result = await self.verified(service, notifier)
        await service.forgot_password("ada@example.com")
        token = notifier.resets["ada@example.com"]
        assert re.fullmatch(r"[0-9a-f]{40}", token)

        await service.reset_password(token, "new-secret")

        stored = await repository.get_by_email("ada@example.com")
        assert stored.reset_token is None
        assert stored.refresh_token is None
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(result.tokens.refresh_token)
        with pytest.raises(InvalidCredentialsError):
            await service.login("ada@example.com", "secret123")
        assert (await service.login("ada@example.com", "new-secret")).tokens

    @pytest.mark.asyncio
    async def test_reset_token_is_single_use(self, service, notifier):
        await self.verified(service, notifier)
        await service.forgot_password("ada@example.com")
        token = notifier.resets["ada@example.com"]
        await service.reset_password(token, "new-secret")
        with pytest.raises(InvalidResetTokenError):
            await service.reset_password(token, "another-secret")

    @pytest.mark.asyncio
    async def test_expired_reset_token(self, service, notifier, clock):
        await self.verified(service, notifier)
        await service.forgot_password("ada@example.com")
        clock.advance(minutes=11)
        with pytest.raises(InvalidResetTokenError) as exc_info:
            await service.reset_password(notifier.resets["ada@example.com"], "new-secret")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_reset_token(self, service):
        with pytest.raises(InvalidResetTokenError):
            await service.reset_password("0" * 40, "new-secret")


class TestProfiles:
    @pytest.mark.asyncio
    async def test_update_name_and_profile(self, service):
        result = await register(service)
        profile = LearnerProfile(age=21, education="BSc", interests=[" python ", "", "ml"])
        user = await service.update_profile(result.user.id, name=" Ada L ", profile=profile)

        assert user.name == "Ada L"
        assert user.profile.age == 21
        assert user.profile.interests == ["python", "ml"]
        assert (await service.get_profile(result.user.id)).name == "Ada L"

    @pytest.mark.asyncio
    async def test_empty_update_is_noop(self, service):
        result = await register(service)
        user = await service.update_profile(result.user.id)
        assert user.name == "Ada Lovelace"

    @pytest.mark.asyncio
    async def test_missing_profile(self, service):
        with pytest.raises(AccountNotFoundError):
            await service.get_profile("missing")


class TestAdministration:
    @pytest.mark.asyncio
    async def test_list_users(self, service, clock):
        await register(service, email="a@example.com")
        clock.advance(seconds=1)
        await register(service, email="b@example.com")

        users, total = await service.list_users(page=1, limit=1)
        assert total == 2
        assert [user.email for user in users] == ["b@example.com"]

        users, _ = await service.list_users(search="A@EXAMPLE")
        assert [user.email for user in users] == ["a@example.com"]

    @pytest.mark.asyncio
    async def test_toggle_user(self, service):
        admin = await register(service, email="admin@example.com")
        student = await register(service, email="student@example.com")

        user = await service.toggle_user_active(admin.user.id, student.user.id)
        assert user.is_active is False
        user = await service.toggle_user_active(admin.user.id, student.user.id)
        assert user.is_active is True

    @pytest.mark.asyncio
    async def test_cannot_toggle_self(self, service):
        admin = await register(service)
        with pytest.raises(SelfDeactivationError) as exc_info:
            await service.toggle_user_active(admin.user.id, admin.user.id)
        assert exc_info.value.message == "Cannot deactivate your own account"

    @pytest.mark.asyncio
    async def test_toggle_missing_user(self, service):
        with pytest.raises(AccountNotFoundError):
            await service.toggle_user_active("admin", "missing")


class TestGoogleLogin:
    @pytest.mark.asyncio
    async def test_creates_verified_user(self, service, repository):
        profile = GoogleProfile(id="g-1", email="Grace@Example.com", name="Grace Hopper", verified_email=True)
        result = await service.login_with_google(profile)

        assert result.user.email == "grace@example.com"
        assert result.user.is_verified is True
        assert result.user.auth_provider == AuthProvider.GOOGLE
        stored = await repository.get_by_google_id("g-1")
        assert stored.refresh_token == result.tokens.refresh_token

    @pytest.mark.asyncio
    async def test_returning_google_user(self, service):
        profile = GoogleProfile(id="g-1", email="grace@example.com", name="Grace")
        first = await service.login_with_google(profile)
        second = await service.login_with_google(profile)
        assert first.user.id == second.user.id

    @pytest.mark.asyncio
    async def test_links_existing_local_account(self, service, repository):
        local = await register(service)
        result = await service.login_with_google(
            GoogleProfile(id="g-9", email="ada@example.com", verified_email=True)
        )

        assert result.user.id == local.user.id
        stored = await repository.get_by_id(local.user.id)
        assert stored.google_id == "g-9"
        assert stored.auth_provider == AuthProvider.GOOGLE
        assert stored.is_verified is True
        # Password sign-in keeps working after linking
        assert (await service.login("ada@example.com", "secret123")).tokens

    @pytest.mark.asyncio
    async def test_unverified_email_cannot_claim_local_account(self, service, repository):
        local = await register(service)

        with pytest.raises(OAuthError) as exc_info:
            await service.login_with_google(
                GoogleProfile(id="other-g", email="ada@example.com", verified_email=False)
            )

        assert exc_info.value.message == "Google account email is not verified"
        stored = await repository.get_by_id(local.user.id)
        assert stored.google_id is None
        assert stored.auth_provider == AuthProvider.LOCAL
        assert stored.is_verified is False
        assert stored.refresh_token == local.tokens.refresh_token
        assert await repository.get_by_google_id("other-g") is None

    @pytest.mark.asyncio
    async def test_new_user_from_unverified_email_stays_unverified(self, service):
        result = await service.login_with_google(GoogleProfile(id="g-2", email="grace@example.com"))
        assert result.user.is_verified is False
        assert result.user.auth_provider == AuthProvider.GOOGLE

    @pytest.mark.asyncio
    async def test_missing_email(self, service):
        with pytest.raises(OAuthError) as exc_info:
            await service.login_with_google(GoogleProfile(id="g-1"))
        assert exc_info.value.message == "No email provided by Google"

    @pytest.mark.asyncio
    async def test_deactivated_google_user(self, service, repository):
        result = await service.login_with_google(GoogleProfile(id="g-1", email="grace@example.com"))
        await repository.update(result.user.id, {"is_active": False})
        with pytest.raises(AccountDeactivatedError):
            await service.login_with_google(GoogleProfile(id="g-1", email="grace@example.com"))
