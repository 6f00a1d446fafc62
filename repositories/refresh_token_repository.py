"""
Refresh credential store over the `refresh-tokens` collection.

Only SHA-256(signed token) is persisted; the token's ``jti`` (token_id) is the
lookup key. Revocation is a conditional update on ``revoked: False`` and the
modified count tells the caller whether *this* call performed it, which is how
two concurrent rotations of the same token are told apart.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from bson import ObjectId
from pymongo import DESCENDING
from pymongo.asynchronous.collection import AsyncCollection

from infrastructure.jwt_codec import JWTCodec
from schemas.models.token import RefreshTokenDoc
from shared.client_meta import ClientMeta
from shared.crypto import hash_token
from shared.generators import generate_token_id


@dataclass(frozen=True)
class IssuedRefreshToken:
    token_id: str
    token: str
    record: RefreshTokenDoc


class RefreshTokenRepository:
    def __init__(self, collection: AsyncCollection, codec: JWTCodec) -> None:
        self._col = collection
        self._codec = codec

    @staticmethod
    def hash_token(raw_token: str) -> str:
        return hash_token(raw_token)

    async def issue(
        self,
        user_id: ObjectId,
        generation: int,
        meta: Optional[ClientMeta],
        now: datetime,
    ) -> IssuedRefreshToken:
        """Sign a refresh token and persist its record before returning it."""
        token_id = generate_token_id()
        token = self._codec.encode_refresh(str(user_id), token_id, generation)
        meta = (meta or ClientMeta()).normalized()

        record = RefreshTokenDoc(
            user_id=user_id,
            token_id=token_id,
            token_hash=self.hash_token(token),
            generation=generation,
            revoked=False,
            expires_at=now + timedelta(seconds=self._codec.refresh_ttl_seconds),
            user_agent=meta.user_agent,
            ip_address=meta.ip_address,
            created_at=now,
        )
        result = await self._col.insert_one(record.to_mongo())
        record = record.model_copy(update={"id": result.inserted_id})
        return IssuedRefreshToken(token_id=token_id, token=token, record=record)

    async def find_active(self, token_id: str, now: datetime) -> Optional[RefreshTokenDoc]:
        doc = await self._col.find_one(
            {"token_id": token_id, "revoked": False, "expires_at": {"$gt": now}}
        )
        return RefreshTokenDoc.from_mongo(doc)

    async def find_any(self, token_id: str) -> Optional[RefreshTokenDoc]:
        return RefreshTokenDoc.from_mongo(await self._col.find_one({"token_id": token_id}))

    async def revoke(self, token_id: str) -> bool:
        """Revoke one credential; True only if this call flipped the flag."""
        result = await self._col.update_one(
            {"token_id": token_id, "revoked": False},
            {"$set": {"revoked": True}},
        )
        return result.modified_count > 0

    async def revoke_for_user(self, user_id: ObjectId, token_id: str) -> bool:
        result = await self._col.update_one(
            {"token_id": token_id, "user_id": user_id, "revoked": False},
            {"$set": {"revoked": True}},
        )
        return result.modified_count > 0

    async def revoke_all_for_user(self, user_id: ObjectId) -> int:
        result = await self._col.update_many(
            {"user_id": user_id, "revoked": False},
            {"$set": {"revoked": True}},
        )
        return result.modified_count

    async def list_active(self, user_id: ObjectId, now: datetime) -> list[RefreshTokenDoc]:
        cursor = self._col.find(
            {"user_id": user_id, "revoked": False, "expires_at": {"$gt": now}}
        ).sort("created_at", DESCENDING)
        return [RefreshTokenDoc.from_mongo(doc) async for doc in cursor]
