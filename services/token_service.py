"""
TokenService — issuance, rotation and revocation of access/refresh pairs.

A refresh credential is single use. Presenting one that was already rotated is
treated as theft: every credential of the account is revoked. The account's
generation counter is embedded in both tokens at issuance, so bumping it
(credential change, logout-all) invalidates every outstanding access token
without tracking them individually.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from errors import (
    AccountUnavailableError,
    AppError,
    InvalidTokenError,
    NotFoundError,
    RefreshTokenNotFoundError,
    StaleSessionError,
    TokenMismatchError,
    TokenReuseError,
)
from infrastructure.jwt_codec import JWTCodec
from repositories.refresh_token_repository import RefreshTokenRepository
from repositories.user_repository import UserRepository
from schemas.models.base import to_object_id
from schemas.models.user import ROLE_ADMIN, UserDoc
from shared.client_meta import ClientMeta
from shared.crypto import digests_match
from shared.datetime_utils import Clock, utcnow
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_token_expires_in: int
    refresh_token_expires_in: int


@dataclass(frozen=True)
class SessionInfo:
    token_id: str
    user_agent: Optional[str]
    ip_address: Optional[str]
    created_at: Optional[datetime]
    expires_at: datetime


@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: str
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class TokenService:
    def __init__(
        self,
        codec: JWTCodec,
        users: UserRepository,
        refresh_tokens: RefreshTokenRepository,
        clock: Clock = utcnow,
    ) -> None:
        self._codec = codec
        self._users = users
        self._refresh_tokens = refresh_tokens
        self._clock = clock

    async def issue_pair(self, user: UserDoc, meta: Optional[ClientMeta] = None) -> TokenPair:
        """Mint an access/refresh pair at the account's current generation.

        The refresh record is persisted before the pair is returned, so a
        token the caller receives can always be rotated.
        """
        issued = await self._refresh_tokens.issue(user.id, user.generation, meta, self._clock())
        access_token = self._codec.encode_access(
            str(user.id), user.email, user.role, user.generation
        )
        log.info("token_pair_issued", user_id=str(user.id), token_id=issued.token_id)
        return TokenPair(
            access_token=access_token,
            refresh_token=issued.token,
            access_token_expires_in=self._codec.access_ttl_seconds,
            refresh_token_expires_in=self._codec.refresh_ttl_seconds,
        )

    async def rotate(self, raw_refresh: str, meta: Optional[ClientMeta] = None) -> TokenPair:
        """Exchange a refresh token for a new pair, revoking the presented one."""
        try:
            claims = self._codec.decode_refresh(raw_refresh)
        except AppError as e:
            raise InvalidTokenError("Invalid or expired refresh token") from e

        now = self._clock()
        record = await self._refresh_tokens.find_active(claims.token_id, now)
        if record is None:
            existing = await self._refresh_tokens.find_any(claims.token_id)
            if existing is not None and existing.revoked:
                revoked = await self._refresh_tokens.revoke_all_for_user(existing.user_id)
                log.warning(
                    "refresh_token_reuse_detected",
                    user_id=str(existing.user_id),
                    token_id=claims.token_id,
                    sessions_revoked=revoked,
                )
                raise TokenReuseError(
                    "Refresh token reuse detected. All sessions have been revoked."
                )
            raise RefreshTokenNotFoundError("Refresh token not found or expired")

        if not digests_match(self._refresh_tokens.hash_token(raw_refresh), record.token_hash):
            log.warning("refresh_token_mismatch", token_id=claims.token_id)
            raise TokenMismatchError("Refresh token mismatch")

        user = await self._users.find_by_id(record.user_id)
        if user is None or not user.is_active:
            raise AccountUnavailableError("User not found or inactive")

        if claims.generation != user.generation:
            await self._refresh_tokens.revoke(claims.token_id)
            log.info(
                "refresh_token_stale",
                user_id=str(user.id),
                token_id=claims.token_id,
                token_generation=claims.generation,
                account_generation=user.generation,
            )
            raise StaleSessionError("Session expired. Please log in again.")

        if not await self._refresh_tokens.revoke(claims.token_id):
            # Another request rotated this token between our lookup and revoke
            revoked = await self._refresh_tokens.revoke_all_for_user(user.id)
            log.warning(
                "refresh_token_reuse_detected",
                user_id=str(user.id),
                token_id=claims.token_id,
                sessions_revoked=revoked,
                reason="concurrent_rotation",
            )
            raise TokenReuseError("Refresh token reuse detected. All sessions have been revoked.")

        return await self.issue_pair(user, meta)

    async def revoke(self, raw_refresh: Optional[str], user_id: Any = None) -> bool:
        """Revoke the credential behind *raw_refresh*.

        Undecodable tokens are a no-op, as are tokens of another account when
        *user_id* is given.
        """
        if not raw_refresh:
            return False
        try:
            claims = self._codec.decode_refresh(raw_refresh)
        except AppError:
            return False
        if user_id is not None and claims.user_id != str(user_id):
            return False
        revoked = await self._refresh_tokens.revoke(claims.token_id)
        if revoked:
            log.info("refresh_token_revoked", user_id=claims.user_id, token_id=claims.token_id)
        return revoked

    async def revoke_all(self, user_id: Any) -> int:
        """Invalidate every session of the account.

        The generation bump comes first so access tokens die even if the
        refresh purge is interrupted.
        """
        oid = to_object_id(user_id)
        if oid is None or await self._users.increment_generation(oid, self._clock()) is None:
            raise AccountUnavailableError("User not found or inactive")
        revoked = await self._refresh_tokens.revoke_all_for_user(oid)
        log.info("all_sessions_revoked", user_id=str(oid), sessions_revoked=revoked)
        return revoked

    async def revoke_refresh_tokens(self, user_id: Any) -> int:
        """Revoke every refresh credential without touching generation.

        For callers whose own account update already bumped the generation.
        """
        oid = to_object_id(user_id)
        if oid is None:
            return 0
        revoked = await self._refresh_tokens.revoke_all_for_user(oid)
        log.info("refresh_tokens_revoked", user_id=str(oid), sessions_revoked=revoked)
        return revoked

    async def list_sessions(self, user_id: Any) -> list[SessionInfo]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        records = await self._refresh_tokens.list_active(oid, self._clock())
        return [
            SessionInfo(
                token_id=r.token_id,
                user_agent=r.user_agent,
                ip_address=r.ip_address,
                created_at=r.created_at,
                expires_at=r.expires_at,
            )
            for r in records
        ]

    async def revoke_session(self, user_id: Any, token_id: str) -> None:
        oid = to_object_id(user_id)
        if oid is None or not await self._refresh_tokens.revoke_for_user(oid, token_id):
            raise NotFoundError("Session not found")
        log.info("session_revoked", user_id=str(oid), token_id=token_id)

    async def authenticate(self, access_token: str) -> AuthenticatedUser:
        """Resolve a bearer access token to its live account."""
        claims = self._codec.decode_access(access_token)
        user = await self._users.find_by_id(claims.user_id)
        if user is None or not user.is_active:
            raise AccountUnavailableError("User not found or inactive")
        if claims.generation != user.generation:
            raise StaleSessionError("Session expired. Please log in again.")
        return AuthenticatedUser(user_id=str(user.id), email=user.email, role=user.role)
