"""
One-time code store over the `otps` collection.

The attempt counter is advanced with $inc inside find_one_and_update and the
attempt cap sits in the same filter, so parallel guesses can never exceed it.
The record is consumed with a conditional ``used: False`` update, so
concurrent verifications of the same code cannot both succeed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection

from repositories.user_repository import normalize_email
from schemas.models.token import OtpDoc

_NEWEST_FIRST = [("created_at", DESCENDING)]


class OtpRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def supersede_pending(self, user_id: ObjectId, purpose: str) -> int:
        """Mark every unused code for (user, purpose) as used."""
        result = await self._col.update_many(
            {"user_id": user_id, "purpose": purpose, "used": False},
            {"$set": {"used": True}},
        )
        return result.modified_count

    async def insert(self, otp: OtpDoc) -> OtpDoc:
        result = await self._col.insert_one(otp.to_mongo())
        return otp.model_copy(update={"id": result.inserted_id})

    async def find_latest_valid(
        self, email: str, purpose: str, now: datetime
    ) -> Optional[OtpDoc]:
        doc = await self._col.find_one(
            {
                "email": normalize_email(email),
                "purpose": purpose,
                "used": False,
                "expires_at": {"$gt": now},
            },
            sort=_NEWEST_FIRST,
        )
        return OtpDoc.from_mongo(doc)

    async def find_latest_pending(self, user_id: ObjectId, purpose: str) -> Optional[OtpDoc]:
        doc = await self._col.find_one(
            {"user_id": user_id, "purpose": purpose, "used": False},
            sort=_NEWEST_FIRST,
        )
        return OtpDoc.from_mongo(doc)

    async def increment_attempts(
        self, otp_id: ObjectId, max_attempts: int
    ) -> Optional[OtpDoc]:
        """Count one verification attempt while under *max_attempts*.

        Returns the updated record, or None when the code is consumed or its
        attempts are already used up.
        """
        doc = await self._col.find_one_and_update(
            {"_id": otp_id, "used": False, "attempts": {"$lt": max_attempts}},
            {"$inc": {"attempts": 1}},
            return_document=ReturnDocument.AFTER,
        )
        return OtpDoc.from_mongo(doc)

    async def mark_used(self, otp_id: ObjectId) -> bool:
        result = await self._col.update_one(
            {"_id": otp_id, "used": False},
            {"$set": {"used": True}},
        )
        return result.modified_count > 0
