"""
Request DTOs for authentication endpoints.

RegisterRequest         — POST /auth/register
VerifyOtpRequest        — POST /auth/verify-otp
ResendOtpRequest        — POST /auth/resend-otp
LoginRequest            — POST /auth/login, POST /auth/admin/login
GoogleLoginRequest      — POST /auth/google
RefreshTokenRequest     — POST /auth/refresh-token, POST /auth/logout
ForgotPasswordRequest   — POST /auth/forgot-password
ResetPasswordRequest    — POST /auth/reset-password
ChangePasswordRequest   — POST /auth/change-password
"""

from __future__ import annotations

from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from schemas.models.user import ROLE_USER, ROLES
from shared.validators import validate_email, validate_otp_code, validate_password

_PASSWORD_RULES = "Password must be 8-128 characters and contain a letter and a digit"


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not validate_email(value):
        raise ValueError("Invalid email address")
    return value


def _check_new_password(value: str) -> str:
    if not validate_password(value):
        raise ValueError(_PASSWORD_RULES)
    return value


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    email: str
    password: str
    role: str = ROLE_USER

    normalize_email = field_validator("email")(_check_email)
    check_password = field_validator("password")(_check_new_password)

    @field_validator("role")
    @classmethod
    def check_role(cls, value: str) -> str:
        if value not in ROLES:
            raise ValueError(f"role must be one of: {', '.join(ROLES)}")
        return value


class VerifyOtpRequest(BaseModel):
    """Request body for POST /auth/verify-otp.

    ``otp`` is the 6-digit code sent to the user's email address.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str
    otp: str = Field(validation_alias=AliasChoices("otp", "code"))

    normalize_email = field_validator("email")(_check_email)

    @field_validator("otp")
    @classmethod
    def check_otp(cls, value: str) -> str:
        if not validate_otp_code(value):
            raise ValueError("OTP must be 6 digits")
        return value.strip()


class ResendOtpRequest(BaseModel):
    """Request body for POST /auth/resend-otp."""

    model_config = ConfigDict(populate_by_name=True)

    email: str

    normalize_email = field_validator("email")(_check_email)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login and POST /auth/admin/login."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    password: str = Field(min_length=1)

    normalize_email = field_validator("email")(_check_email)


class GoogleLoginRequest(BaseModel):
    """Request body for POST /auth/google.

    Accepts ``credential`` (the Google Identity Services field name) as an
    alias for ``id_token``.
    """

    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(
        min_length=1, validation_alias=AliasChoices("id_token", "credential", "idToken")
    )


class RefreshTokenRequest(BaseModel):
    """Optional body for POST /auth/refresh-token and POST /auth/logout.

    When absent the refresh token is read from the ``refresh_token`` cookie.
    """

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("refresh_token", "refreshToken")
    )


class ForgotPasswordRequest(BaseModel):
    """Request body for POST /auth/forgot-password."""

    model_config = ConfigDict(populate_by_name=True)

    email: str

    normalize_email = field_validator("email")(_check_email)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /auth/reset-password."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1)
    password: str = Field(validation_alias=AliasChoices("password", "new_password"))

    check_password = field_validator("password")(_check_new_password)


class ChangePasswordRequest(BaseModel):
    """Request body for POST /auth/change-password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str = Field(min_length=1)
    new_password: str

    check_new_password = field_validator("new_password")(_check_new_password)
