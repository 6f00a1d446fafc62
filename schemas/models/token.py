"""
Credential document models.

RefreshTokenDoc maps to the `refresh-tokens` collection: one row per issued
refresh token. token_hash stores SHA-256(signed refresh token) and token_id is
the JWT ``jti`` used as the lookup key, so the raw token is never stored.

OtpDoc maps to the `otps` collection. code_hash stores SHA-256(otp_code) — the
plain OTP only ever exists in the outgoing notification. At most one unused
record per (user_id, purpose) is live; creating a new one marks the others
used.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId

OTP_PURPOSE_EMAIL_VERIFICATION = "email_verification"
OTP_PURPOSE_FORGOT_PASSWORD = "forgot_password"
OTP_PURPOSES = (OTP_PURPOSE_EMAIL_VERIFICATION, OTP_PURPOSE_FORGOT_PASSWORD)


class RefreshTokenDoc(MongoBaseModel):
    """Document model for the `refresh-tokens` collection."""

    user_id: PyObjectId
    token_id: str
    token_hash: str
    generation: int = Field(ge=0)
    revoked: bool = False
    expires_at: datetime
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None


class OtpDoc(MongoBaseModel):
    """Document model for the `otps` collection."""

    user_id: PyObjectId
    email: str
    code_hash: str
    purpose: str
    expires_at: datetime
    resend_allowed_at: datetime
    attempts: int = Field(default=0, ge=0)
    used: bool = False
    created_at: Optional[datetime] = None
