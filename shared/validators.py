"""
Input validators for account fields — framework-agnostic, pure functions.

The request DTOs call these from field validators so malformed input is
rejected before it reaches a service.
"""

from __future__ import annotations

import re

import validators as _validators

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
OTP_PATTERN = re.compile(r"^\d{6}$")


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    return bool(_validators.email(email.strip()))


def validate_password(password: str) -> bool:
    """Validate a new account password.

    Rules:
    - Between 8 and 128 characters
    - Contains at least one letter
    - Contains at least one digit
    """
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        return False
    if not re.search(r"[a-zA-Z]", password):
        return False
    if not re.search(r"\d", password):
        return False
    return True


def validate_otp_code(code: str) -> bool:
    """Return True if *code* is exactly six digits."""
    return bool(OTP_PATTERN.match(code.strip()))
