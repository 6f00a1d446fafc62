"""
User (account) document model.

Maps to the `users` MongoDB collection.

Two creation paths produce slightly different shapes:
- Password registration: password_hash set, is_verified False until the OTP
  is confirmed
- Google sign-in: password_hash None, google_id set, is_verified True

generation starts at 0 and is only ever moved by an atomic $inc on credential
change or logout-all; creating an account never bumps it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from schemas.models.base import MongoBaseModel, PyObjectId

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    name: str
    email: str
    password_hash: Optional[str] = None
    role: str = ROLE_USER
    is_verified: bool = False
    is_active: bool = True
    google_id: Optional[str] = None
    profile_picture: Optional[str] = None
    favorites: list[PyObjectId] = []
    generation: int = Field(default=0, ge=0)
    reset_password_token_hash: Optional[str] = None
    reset_password_expires_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN
