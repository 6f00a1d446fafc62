"""
Random code and token generators — pure, side-effect-free functions.

Everything here feeds a credential, so all of it draws from the ``secrets``
CSPRNG.
"""

from __future__ import annotations

import secrets
import uuid

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric OTP, uniform over 100000–999999."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def generate_reset_token(num_bytes: int = 32) -> str:
    """Generate a password reset token.

    Args:
        num_bytes: Random bytes before hex encoding (default 32 → 64 chars).
    """
    return secrets.token_hex(num_bytes)


def generate_token_id() -> str:
    """Opaque identifier for a refresh credential (embedded as the JWT ``jti``)."""
    return str(uuid.uuid4())
