"""
Authentication endpoints under /auth.

Handlers only translate between HTTP and AuthService; every rule lives in the
service. Token pairs are returned in the body and the refresh token is also
set as an httpOnly cookie scoped to /auth, so browser clients never need to
touch it.

Public endpoints carry per-client limits from routes.limiter.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from config import AppSettings
from dependencies import get_auth_service, get_current_user, get_settings
from errors import AuthenticationError
from routes.limiter import (
    AUTH_LIMIT,
    AUTH_LIMIT_MESSAGE,
    OTP_LIMIT,
    OTP_LIMIT_MESSAGE,
    REFRESH_LIMIT,
    REFRESH_LIMIT_MESSAGE,
    limiter,
)
from schemas.dto.requests.auth import (
    ChangePasswordRequest,
    ForgotPasswordRequest,
    GoogleLoginRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
)
from schemas.dto.responses.auth import (
    AuthResponse,
    LogoutAllResponse,
    RegisterResponse,
    ResendOtpResponse,
    SessionResponse,
    SessionsResponse,
    TokenResponse,
    UserProfileResponse,
)
from schemas.dto.responses.common import ErrorResponse, MessageResponse
from services.auth_service import AuthResult, AuthService
from services.token_service import AuthenticatedUser, TokenPair
from shared.client_meta import client_meta_from_request

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 429, 503)},
)

REFRESH_COOKIE = "refresh_token"
REFRESH_COOKIE_PATH = "/auth"

FORGOT_PASSWORD_MESSAGE = "If that email is registered, a password reset link has been sent."


def _set_refresh_cookie(response: Response, pair: TokenPair, settings: AppSettings) -> None:
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=pair.refresh_token_expires_in,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.jwt.cookie_secure,
        samesite="lax",
    )


def _clear_refresh_cookie(response: Response, settings: AppSettings) -> None:
    response.delete_cookie(
        REFRESH_COOKIE,
        path=REFRESH_COOKIE_PATH,
        httponly=True,
        secure=settings.jwt.cookie_secure,
        samesite="lax",
    )


def _signed_in(result: AuthResult, response: Response, settings: AppSettings) -> AuthResponse:
    _set_refresh_cookie(response, result.tokens, settings)
    return AuthResponse.from_result(result)


def _presented_refresh_token(
    request: Request, body: Optional[RefreshTokenRequest]
) -> Optional[str]:
    if body is not None and body.refresh_token:
        return body.refresh_token
    return request.cookies.get(REFRESH_COOKIE)


# ── Registration ──────────────────────────────────────────────────────────────


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
async def register(
    request: Request,
    body: RegisterRequest,
    auth: AuthService = Depends(get_auth_service),
) -> RegisterResponse:
    result = await auth.register(body.name, body.email, body.password, body.role)
    return RegisterResponse(user_id=result.user_id, email=result.email)


@router.post("/verify-otp")
@limiter.limit(AUTH_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
async def verify_otp(
    body: VerifyOtpRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AuthResponse:
    result = await auth.verify_email(body.email, body.otp, client_meta_from_request(request))
    return _signed_in(result, response, settings)


@router.post("/resend-otp")
@limiter.limit(OTP_LIMIT, error_message=OTP_LIMIT_MESSAGE)
async def resend_otp(
    request: Request,
    body: ResendOtpRequest,
    auth: AuthService = Depends(get_auth_service),
) -> ResendOtpResponse:
    sent = await auth.resend_verification(body.email)
    return ResendOtpResponse(resend_allowed_at=sent.resend_allowed_at, expires_at=sent.expires_at)


# ── Sign-in ───────────────────────────────────────────────────────────────────


@router.post("/login")
@limiter.limit(AUTH_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AuthResponse:
    result = await auth.login(body.email, body.password, client_meta_from_request(request))
    return _signed_in(result, response, settings)


@router.post("/admin/login")
@limiter.limit(AUTH_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
async def admin_login(
    body: LoginRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AuthResponse:
    result = await auth.admin_login(body.email, body.password, client_meta_from_request(request))
    return _signed_in(result, response, settings)


@router.post("/google")
@limiter.limit(AUTH_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
async def google_login(
    body: GoogleLoginRequest,
    request: Request,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> AuthResponse:
    result = await auth.google_login(body.id_token, client_meta_from_request(request))
    return _signed_in(result, response, settings)


@router.post("/refresh-token")
@limiter.limit(REFRESH_LIMIT, error_message=REFRESH_LIMIT_MESSAGE)
async def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> TokenResponse:
    raw = _presented_refresh_token(request, body)
    if not raw:
        raise AuthenticationError("Refresh token missing")
    pair = await auth.refresh(raw, client_meta_from_request(request))
    _set_refresh_cookie(response, pair, settings)
    return TokenResponse.from_pair(pair)


# ── Sign-out ──────────────────────────────────────────────────────────────────


@router.post("/logout")
async def logout(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    user: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> MessageResponse:
    await auth.logout(_presented_refresh_token(request, body), user.user_id)
    _clear_refresh_cookie(response, settings)
    return MessageResponse(success=True, message="Logged out successfully")


@router.post("/logout-all")
async def logout_all(
    response: Response,
    user: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> LogoutAllResponse:
    revoked = await auth.logout_all(user.user_id)
    _clear_refresh_cookie(response, settings)
    return LogoutAllResponse(sessions_revoked=revoked)


# ── Passwords ─────────────────────────────────────────────────────────────────


@router.post("/forgot-password")
@limiter.limit(OTP_LIMIT, error_message=OTP_LIMIT_MESSAGE)
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.forgot_password(body.email)
    return MessageResponse(success=True, message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password")
@limiter.limit(AUTH_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    response: Response,
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> MessageResponse:
    await auth.reset_password(body.token, body.password)
    _clear_refresh_cookie(response, settings)
    return MessageResponse(
        success=True, message="Password has been reset. Please log in again."
    )


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    response: Response,
    user: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
    settings: AppSettings = Depends(get_settings),
) -> MessageResponse:
    await auth.change_password(user.user_id, body.current_password, body.new_password)
    _clear_refresh_cookie(response, settings)
    return MessageResponse(
        success=True, message="Password changed. Please log in again."
    )


# ── Account ───────────────────────────────────────────────────────────────────


@router.get("/me")
async def me(
    user: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> UserProfileResponse:
    return UserProfileResponse.from_profile(await auth.get_profile(user.user_id))


@router.get("/sessions")
async def list_sessions(
    user: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> SessionsResponse:
    sessions = await auth.get_sessions(user.user_id)
    return SessionsResponse(sessions=[SessionResponse.from_session(s) for s in sessions])


@router.delete("/sessions/{token_id}")
async def revoke_session(
    token_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await auth.revoke_session(user.user_id, token_id)
    return MessageResponse(success=True, message="Session revoked")
