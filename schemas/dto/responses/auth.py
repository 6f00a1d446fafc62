"""
Response DTOs for authentication endpoints.

UserProfileResponse     — safe account view, used in login/verify/me
TokenResponse           — access/refresh pair and their lifetimes
AuthResponse            — POST /auth/login, /auth/admin/login, /auth/google, /auth/verify-otp
RegisterResponse        — POST /auth/register  (201)
ResendOtpResponse       — POST /auth/resend-otp
SessionResponse         — one entry of GET /auth/sessions
SessionsResponse        — GET /auth/sessions
LogoutAllResponse       — POST /auth/logout-all
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from services.auth_service import AuthResult, UserProfile
from services.token_service import SessionInfo, TokenPair


class UserProfileResponse(BaseModel):
    """Account fields safe to expose; never credentials or generation."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    role: str
    is_verified: bool
    profile_picture: Optional[str] = None
    favorites: list[str] = []
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserProfileResponse":
        return cls(
            id=profile.id,
            name=profile.name,
            email=profile.email,
            role=profile.role,
            is_verified=profile.is_verified,
            profile_picture=profile.profile_picture,
            favorites=list(profile.favorites),
            created_at=profile.created_at,
            last_login_at=profile.last_login_at,
        )


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    refresh_expires_in: int

    @classmethod
    def from_pair(cls, pair: TokenPair) -> "TokenResponse":
        return cls(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            expires_in=pair.access_token_expires_in,
            refresh_expires_in=pair.refresh_token_expires_in,
        )


class AuthResponse(BaseModel):
    """Response body for every endpoint that signs the caller in (200)."""

    model_config = ConfigDict(populate_by_name=True)

    user: UserProfileResponse
    tokens: TokenResponse
    is_new_user: bool = False

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            user=UserProfileResponse.from_profile(result.user),
            tokens=TokenResponse.from_pair(result.tokens),
            is_new_user=result.is_new,
        )


class RegisterResponse(BaseModel):
    """Response body for POST /auth/register (201)."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: str
    email: str
    requires_verification: bool = True
    message: str = "Registration successful. Check your email for the verification code."


class ResendOtpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str = "A new OTP has been sent to your email."
    resend_allowed_at: datetime
    expires_at: datetime


class SessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token_id: str
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: datetime

    @classmethod
    def from_session(cls, session: SessionInfo) -> "SessionResponse":
        return cls(
            token_id=session.token_id,
            user_agent=session.user_agent,
            ip_address=session.ip_address,
            created_at=session.created_at,
            expires_at=session.expires_at,
        )


class SessionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sessions: list[SessionResponse]


class LogoutAllResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    sessions_revoked: int
