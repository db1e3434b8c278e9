"""
Authentication API endpoints.

Account lifecycle, token refresh, profile management, admin user
management and Google sign-in. Every response uses the standard envelope.
"""

import hmac
import logging
import math
import secrets
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from api.dependencies import (
    get_app_settings,
    get_auth_service,
    get_google_oauth,
    get_rate_limiter,
)
from api.middleware.auth import (
    get_current_principal,
    rate_limit_auth,
    require_admin,
    require_ownership,
)
from api.models.responses import ApiResponse
from shared.config import Settings
from shared.exceptions import AuthenticationError
from shared.models import Principal
from modules.ratelimit.limiter import RateLimiter

from .interfaces import IAuthService
from .oauth import GoogleOAuthClient
from .models import (
    AuthResult,
    EmailRequest,
    LoginRequest,
    Pagination,
    PrincipalResponse,
    RefreshRequest,
    RegisterRequest,
    ResetPasswordRequest,
    Role,
    TokensResponse,
    UpdateProfileRequest,
    UserListResponse,
    UserResponse,
    VerifyOtpRequest,
)
from .exceptions import InvalidOTPError, OAuthError

logger = logging.getLogger(__name__)

router = APIRouter()

OAUTH_STATE_COOKIE = "trackwise_oauth_state"
OAUTH_STATE_MAX_AGE = 10 * 60  # seconds


# =============================================================================
# Registration and verification
# =============================================================================


@router.post("/register", response_model=ApiResponse[AuthResult], status_code=201)
async def register(
    body: RegisterRequest,
    _: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse[AuthResult]:
    """Create a student account. A verification code is sent to the email."""
    result = await auth.register(body.name, body.email, body.password)
    return ApiResponse(message="Registration successful! OTP sent to your email.", data=result)


@router.post("/verify-otp", response_model=ApiResponse, response_model_exclude_none=True)
async def verify_otp(
    body: VerifyOtpRequest,
    key: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> ApiResponse:
    try:
        await auth.verify_otp(body.email, body.otp)
    except InvalidOTPError:
        await limiter.record_failure(key)
        raise
    return ApiResponse(message="Email verified! You can now login.")


@router.post("/resend-otp", response_model=ApiResponse, response_model_exclude_none=True)
async def resend_otp(
    body: EmailRequest,
    _: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse:
    await auth.resend_otp(body.email)
    return ApiResponse(message="New OTP sent to your email.")


# =============================================================================
# Sessions
# =============================================================================


@router.post("/login", response_model=ApiResponse[AuthResult])
async def login(
    body: LoginRequest,
    key: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> ApiResponse[AuthResult]:
    """Sign in with email and password."""
    try:
        result = await auth.login(body.email, body.password)
    except AuthenticationError:
        await limiter.record_failure(key)
        raise
    return ApiResponse(message="Login successful", data=result)


@router.post("/refresh", response_model=ApiResponse[TokensResponse])
async def refresh(
    body: RefreshRequest,
    key: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> ApiResponse[TokensResponse]:
    """
    Exchange a refresh token for a new token pair.

    The presented refresh token stops working once this succeeds.
    """
    try:
        tokens = await auth.refresh(body.refresh_token)
    except AuthenticationError:
        await limiter.record_failure(key)
        raise
    return ApiResponse(message="Token refreshed successfully", data=TokensResponse(tokens=tokens))


@router.post("/logout", response_model=ApiResponse, response_model_exclude_none=True)
async def logout(
    principal: Principal = Depends(get_current_principal),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse:
    await auth.logout(principal.id)
    return ApiResponse(message="Logout successful")


@router.get("/verify", response_model=ApiResponse[PrincipalResponse])
async def verify_token(
    principal: Principal = Depends(get_current_principal),
) -> ApiResponse[PrincipalResponse]:
    """Confirm the bearer token is valid and echo the principal."""
    return ApiResponse(message="Token is valid", data=PrincipalResponse(user=principal))


# =============================================================================
# Password recovery
# =============================================================================


@router.post("/forgot-password", response_model=ApiResponse, response_model_exclude_none=True)
async def forgot_password(
    body: EmailRequest,
    _: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse:
    await auth.forgot_password(body.email)
    return ApiResponse(message="Reset password email sent")


@router.post("/reset-password", response_model=ApiResponse, response_model_exclude_none=True)
async def reset_password(
    body: ResetPasswordRequest,
    _: str = Depends(rate_limit_auth),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse:
    await auth.reset_password(body.token, body.new_password)
    return ApiResponse(message="Password reset successful! Please login now.")


# =============================================================================
# Profiles
# =============================================================================


@router.get("/profile", response_model=ApiResponse[UserResponse])
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    user = await auth.get_profile(principal.id)
    return ApiResponse(message="Profile retrieved successfully", data=UserResponse(user=user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    body: UpdateProfileRequest,
    principal: Principal = Depends(get_current_principal),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    """Update the caller's name and learner profile. Other fields are ignored."""
    user = await auth.update_profile(principal.id, name=body.name, profile=body.profile)
    return ApiResponse(message="Profile updated successfully", data=UserResponse(user=user))


@router.get("/profile/{user_id}", response_model=ApiResponse[UserResponse])
async def get_user_profile(
    user_id: str,
    _: Principal = Depends(require_ownership),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    """Read a specific user's profile. Admins may read anyone's."""
    user = await auth.get_profile(user_id)
    return ApiResponse(message="User profile retrieved successfully", data=UserResponse(user=user))


# =============================================================================
# Administration
# =============================================================================


@router.get("/users", response_model=ApiResponse[UserListResponse])
async def list_users(
    page: int = Query(default=1, ge=1, description="Page number (1-indexed)"),
    limit: int = Query(default=10, ge=1, le=100, description="Items per page"),
    role: Optional[Role] = Query(default=None, description="Filter by role"),
    search: Optional[str] = Query(default=None, max_length=100, description="Name or email contains"),
    _: Principal = Depends(require_admin),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse[UserListResponse]:
    """List active users, newest first."""
    users, total = await auth.list_users(
        page=page,
        limit=limit,
        role=role.value if role else None,
        search=search,
    )
    pagination = Pagination(
        current=page,
        total=math.ceil(total / limit),
        count=len(users),
        total_records=total,
    )
    return ApiResponse(
        message="Users retrieved successfully",
        data=UserListResponse(users=users, pagination=pagination),
    )


@router.put("/users/{user_id}/toggle", response_model=ApiResponse[UserResponse])
async def toggle_user(
    user_id: str,
    principal: Principal = Depends(require_admin),
    auth: IAuthService = Depends(get_auth_service),
) -> ApiResponse[UserResponse]:
    user = await auth.toggle_user_active(principal.id, user_id)
    state = "activated" if user.is_active else "deactivated"
    return ApiResponse(message=f"User {state} successfully", data=UserResponse(user=user))


# =============================================================================
# Google sign-in
# =============================================================================


def _frontend_redirect(
    settings: Settings,
    path: str,
    fragment: Optional[dict[str, str]] = None,
) -> RedirectResponse:
    url = f"{settings.frontend_url.rstrip('/')}{path}"
    if fragment:
        # Tokens travel in the fragment so they never reach server logs
        url = f"{url}#{urlencode(fragment)}"
    response = RedirectResponse(url)
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


@router.get("/google")
async def google_login(
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
) -> RedirectResponse:
    """Redirect to Google's consent screen."""
    state = secrets.token_urlsafe(24)
    response = RedirectResponse(oauth.authorization_url(state))
    response.set_cookie(
        OAUTH_STATE_COOKIE,
        state,
        max_age=OAUTH_STATE_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = Query(default=None),
    state: Optional[str] = Query(default=None),
    error: Optional[str] = Query(default=None),
    oauth: GoogleOAuthClient = Depends(get_google_oauth),
    auth: IAuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """
    Complete Google sign-in.

    Redirects to the frontend with the token pair in the URL fragment, or
    to the login page with an error flag.
    """
    expected_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if error or not code:
        logger.info(f"Google sign-in aborted: {error or 'missing code'}")
        return _frontend_redirect(settings, "/login", {"error": "oauth_failed"})
    if not state or not expected_state or not hmac.compare_digest(state, expected_state):
        logger.warning("Google callback state mismatch")
        return _frontend_redirect(settings, "/login", {"error": "oauth_state"})

    try:
        profile = await oauth.exchange_code(code)
        result = await auth.login_with_google(profile)
    except (OAuthError, AuthenticationError) as e:
        logger.warning(f"Google sign-in failed: {e.message}")
        return _frontend_redirect(settings, "/login", {"error": "oauth_failed"})

    return _frontend_redirect(
        settings,
        "/auth/callback",
        {
            "accessToken": result.tokens.access_token,
            "refreshToken": result.tokens.refresh_token,
        },
    )
