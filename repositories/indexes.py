"""
Collection names and index bootstrap.

ensure_indexes() runs once at startup from the app lifespan. The TTL indexes
let MongoDB physically purge expired refresh tokens immediately and expired
OTPs an hour after expiry (kept briefly for debugging); the revoked flag keeps
its logical meaning until then.
"""

from __future__ import annotations

from pymongo import ASCENDING, IndexModel
from pymongo.asynchronous.database import AsyncDatabase

from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"
REFRESH_TOKENS_COLLECTION = "refresh-tokens"
OTPS_COLLECTION = "otps"

OTP_RETENTION_SECONDS = 3600

INDEXES: dict[str, list[IndexModel]] = {
    USERS_COLLECTION: [
        IndexModel([("email", ASCENDING)], unique=True, name="email_unique"),
        IndexModel([("google_id", ASCENDING)], sparse=True, name="google_id"),
        IndexModel(
            [("reset_password_token_hash", ASCENDING)],
            sparse=True,
            name="reset_password_token_hash",
        ),
    ],
    REFRESH_TOKENS_COLLECTION: [
        IndexModel([("token_id", ASCENDING)], unique=True, name="token_id_unique"),
        IndexModel([("user_id", ASCENDING), ("revoked", ASCENDING)], name="user_revoked"),
        IndexModel([("expires_at", ASCENDING)], expireAfterSeconds=0, name="expires_at_ttl"),
    ],
    OTPS_COLLECTION: [
        IndexModel([("user_id", ASCENDING), ("purpose", ASCENDING)], name="user_purpose"),
        IndexModel([("email", ASCENDING), ("purpose", ASCENDING)], name="email_purpose"),
        IndexModel(
            [("expires_at", ASCENDING)],
            expireAfterSeconds=OTP_RETENTION_SECONDS,
            name="expires_at_ttl",
        ),
    ],
}


async def ensure_indexes(db: AsyncDatabase) -> None:
    for collection, models in INDEXES.items():
        names = await db[collection].create_indexes(models)
        log.info("mongo_indexes_ensured", collection=collection, indexes=names)
