"""
Cryptographic helpers — credential verification and token hashing.

Uses argon2 for passwords (via argon2-cffi) and SHA-256 for token hashing.
The password algorithm is an implementation detail of PasswordHasher; the
services only ever call hash() and verify().
"""

from __future__ import annotations

import hashlib
import hmac

from argon2 import PasswordHasher as _Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError


class PasswordHasher:
    """One-way credential verifier injected into the auth service."""

    def __init__(self, hasher: _Argon2Hasher | None = None) -> None:
        self._hasher = hasher or _Argon2Hasher()

    def hash(self, plain_password: str) -> str:
        """Hash *plain_password* with argon2id."""
        return self._hasher.hash(plain_password)

    def verify(self, plain_password: str, password_hash: str | None) -> bool:
        """Return ``True`` if *plain_password* matches *password_hash*.

        A missing hash (OAuth-only account) or a malformed one never matches.
        """
        if not password_hash:
            return False
        try:
            return self._hasher.verify(password_hash, plain_password)
        except (VerificationError, InvalidHashError):
            return False


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used for refresh tokens, OTP codes and password reset tokens so the
    plaintext is never persisted.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def digests_match(a: str, b: str) -> bool:
    """Constant-time comparison of two hex digests."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
