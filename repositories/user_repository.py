"""
Account persistence over the `users` collection.

Every state change is a single-document update so concurrent requests for the
same account never interleave a read-modify-write. generation is only ever
moved with $inc; the credential-update methods bump it in the same update that
writes the new password hash.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.base import to_object_id
from schemas.models.user import UserDoc


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_by_id(self, user_id: Any) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return UserDoc.from_mongo(await self._col.find_one({"_id": oid}))

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        doc = await self._col.find_one({"email": normalize_email(email)})
        return UserDoc.from_mongo(doc)

    async def find_by_google_id_or_email(
        self, google_id: str, email: str
    ) -> Optional[UserDoc]:
        doc = await self._col.find_one(
            {"$or": [{"google_id": google_id}, {"email": normalize_email(email)}]}
        )
        return UserDoc.from_mongo(doc)

    async def insert(self, user: UserDoc) -> UserDoc:
        """Insert a new account. DuplicateKeyError propagates on an email race."""
        data = user.to_mongo()
        result = await self._col.insert_one(data)
        return user.model_copy(update={"id": result.inserted_id})

    async def mark_verified(self, user_id: ObjectId, now: datetime) -> bool:
        result = await self._col.update_one(
            {"_id": user_id},
            {"$set": {"is_verified": True, "updated_at": now}},
        )
        return result.modified_count > 0

    async def update_last_login(self, user_id: ObjectId, now: datetime) -> None:
        await self._col.update_one(
            {"_id": user_id},
            {"$set": {"last_login_at": now, "updated_at": now}},
        )

    async def link_google_identity(
        self,
        user_id: ObjectId,
        google_id: str,
        picture: Optional[str],
        now: datetime,
    ) -> Optional[UserDoc]:
        updates: dict[str, Any] = {
            "google_id": google_id,
            "is_verified": True,
            "updated_at": now,
        }
        doc = await self._col.find_one_and_update(
            {"_id": user_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
        if doc is not None and picture and not doc.get("profile_picture"):
            doc = await self._col.find_one_and_update(
                {"_id": user_id, "profile_picture": None},
                {"$set": {"profile_picture": picture}},
                return_document=ReturnDocument.AFTER,
            ) or doc
        return UserDoc.from_mongo(doc)

    async def set_reset_token(
        self,
        user_id: ObjectId,
        token_hash: str,
        expires_at: datetime,
        now: datetime,
    ) -> None:
        """Store a reset token hash, replacing any previous one."""
        await self._col.update_one(
            {"_id": user_id},
            {
                "$set": {
                    "reset_password_token_hash": token_hash,
                    "reset_password_expires_at": expires_at,
                    "updated_at": now,
                }
            },
        )

    async def reset_password_with_token(
        self, token_hash: str, password_hash: str, now: datetime
    ) -> Optional[UserDoc]:
        """Consume an unexpired reset token and set the new credential.

        Matching on the token hash inside the update makes the token single
        use: a second concurrent caller finds nothing.
        """
        doc = await self._col.find_one_and_update(
            {
                "reset_password_token_hash": token_hash,
                "reset_password_expires_at": {"$gt": now},
            },
            self._credential_update(password_hash, now),
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def update_password(
        self, user_id: ObjectId, password_hash: str, now: datetime
    ) -> Optional[UserDoc]:
        doc = await self._col.find_one_and_update(
            {"_id": user_id},
            self._credential_update(password_hash, now),
            return_document=ReturnDocument.AFTER,
        )
        return UserDoc.from_mongo(doc)

    async def increment_generation(
        self, user_id: ObjectId, now: datetime
    ) -> Optional[int]:
        """Atomically bump generation; returns the new value or None if missing."""
        doc = await self._col.find_one_and_update(
            {"_id": user_id},
            {"$inc": {"generation": 1}, "$set": {"updated_at": now}},
            projection={"generation": 1},
            return_document=ReturnDocument.AFTER,
        )
        return doc["generation"] if doc else None

    @staticmethod
    def _credential_update(password_hash: str, now: datetime) -> dict:
        # Updating an existing credential always invalidates outstanding tokens
        return {
            "$set": {"password_hash": password_hash, "updated_at": now},
            "$unset": {"reset_password_token_hash": "", "reset_password_expires_at": ""},
            "$inc": {"generation": 1},
        }
