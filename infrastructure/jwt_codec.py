"""Signed access/refresh token encoding and decoding (PyJWT).

Access and refresh tokens use separate secrets and carry a ``type`` claim so
one can never be presented in place of the other. The codec is stateless: the
generation check against the stored account is the caller's job
(TokenService.authenticate / TokenService.rotate).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from config import JWTSettings
from errors import InvalidTokenError, TokenExpiredError, WrongTokenTypeError
from shared.datetime_utils import Clock, utcnow

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    email: str
    role: str
    generation: int
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    token_id: str
    generation: int
    expires_at: datetime


class JWTCodec:
    def __init__(self, settings: JWTSettings, clock: Clock = utcnow) -> None:
        if not settings.jwt_secret or not settings.jwt_refresh_secret:
            raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must both be set")
        self._settings = settings
        self._clock = clock

    @property
    def access_ttl_seconds(self) -> int:
        return self._settings.access_token_ttl_seconds

    @property
    def refresh_ttl_seconds(self) -> int:
        return self._settings.refresh_token_ttl_seconds

    # ── Encoding ──────────────────────────────────────────────────────────────

    def _sign(self, claims: dict[str, Any], ttl_seconds: int, secret: str) -> str:
        now = self._clock()
        claims.update(
            {
                "iss": self._settings.jwt_issuer,
                "aud": self._settings.jwt_audience,
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
            }
        )
        return jwt.encode(claims, secret, algorithm=self._settings.jwt_algorithm)

    def encode_access(self, user_id: str, email: str, role: str, generation: int) -> str:
        return self._sign(
            {
                "sub": str(user_id),
                "email": email,
                "role": role,
                "gen": generation,
                "type": TOKEN_TYPE_ACCESS,
            },
            self._settings.access_token_ttl_seconds,
            self._settings.jwt_secret,
        )

    def encode_refresh(self, user_id: str, token_id: str, generation: int) -> str:
        return self._sign(
            {
                "sub": str(user_id),
                "jti": token_id,
                "gen": generation,
                "type": TOKEN_TYPE_REFRESH,
            },
            self._settings.refresh_token_ttl_seconds,
            self._settings.jwt_refresh_secret,
        )

    # ── Decoding ──────────────────────────────────────────────────────────────

    def _verify(self, token: str, secret: str, expected_type: str) -> dict[str, Any]:
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.jwt_audience,
                issuer=self._settings.jwt_issuer,
                # exp is checked below against the same clock that stamped it
                options={
                    "require": ["exp", "iat", "sub", "type"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"Invalid {expected_type} token") from e

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            raise InvalidTokenError(f"Invalid {expected_type} token")
        if exp <= self._clock().timestamp():
            raise TokenExpiredError(f"{expected_type.capitalize()} token expired")

        if claims.get("type") != expected_type:
            raise WrongTokenTypeError("Invalid token type")
        if not isinstance(claims.get("gen"), int):
            raise InvalidTokenError(f"Invalid {expected_type} token")
        return claims

    def decode_access(self, token: str) -> AccessClaims:
        claims = self._verify(token, self._settings.jwt_secret, TOKEN_TYPE_ACCESS)
        return AccessClaims(
            user_id=claims["sub"],
            email=claims.get("email", ""),
            role=claims.get("role", ""),
            generation=claims["gen"],
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    def decode_refresh(self, token: str) -> RefreshClaims:
        claims = self._verify(token, self._settings.jwt_refresh_secret, TOKEN_TYPE_REFRESH)
        token_id = claims.get("jti")
        if not token_id:
            raise InvalidTokenError("Invalid refresh token")
        return RefreshClaims(
            user_id=claims["sub"],
            token_id=token_id,
            generation=claims["gen"],
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )
