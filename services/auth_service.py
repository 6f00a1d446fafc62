"""
AuthService — the account-facing operations behind every /auth route.

Orchestrates the account store, the credential verifier, OTPs, token pairs
and notifications. Responses that could reveal whether an email is registered
(forgot-password, admin login) are kept uniform across branches.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from pymongo.errors import DuplicateKeyError

from config import AppSettings
from errors import (
    AccountDisabledError,
    AccountUnavailableError,
    AlreadyRegisteredError,
    AlreadyVerifiedError,
    EmailNotVerifiedError,
    IdentityVerificationError,
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    NotificationUnavailableError,
    PendingVerificationError,
    ValidationError,
)
from infrastructure.identity.protocol import IdentityVerifier
from infrastructure.notifications.protocol import (
    JOB_FORGOT_PASSWORD,
    JOB_PASSWORD_CHANGED,
    JOB_WELCOME,
    NotificationChannel,
)
from repositories.user_repository import UserRepository, normalize_email
from schemas.models.token import OTP_PURPOSE_EMAIL_VERIFICATION
from schemas.models.user import ROLE_USER, ROLES, UserDoc
from services.otp_service import OtpService, ResendStatus
from services.token_service import SessionInfo, TokenPair, TokenService
from shared.client_meta import ClientMeta
from shared.crypto import PasswordHasher, hash_token
from shared.datetime_utils import Clock, utcnow
from shared.generators import generate_reset_token
from shared.logging import get_logger

log = get_logger(__name__)

ADMIN_LOGIN_FAILED = "Invalid credentials or not an admin account"
LOGIN_FAILED = "Invalid email or password"


@dataclass(frozen=True)
class UserProfile:
    """Account view safe to return to clients: no credential or session state."""

    id: str
    name: str
    email: str
    role: str
    is_verified: bool
    profile_picture: Optional[str] = None
    favorites: list[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserProfile":
        return cls(
            id=str(user.id),
            name=user.name,
            email=user.email,
            role=user.role,
            is_verified=user.is_verified,
            profile_picture=user.profile_picture,
            favorites=[str(f) for f in user.favorites],
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


@dataclass(frozen=True)
class AuthResult:
    user: UserProfile
    tokens: TokenPair
    is_new: bool = False


@dataclass(frozen=True)
class RegistrationResult:
    user_id: str
    email: str


class AuthService:
    def __init__(
        self,
        settings: AppSettings,
        users: UserRepository,
        tokens: TokenService,
        otps: OtpService,
        password_hasher: PasswordHasher,
        notifications: NotificationChannel,
        identity_verifier: IdentityVerifier,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings
        self._users = users
        self._tokens = tokens
        self._otps = otps
        self._hasher = password_hasher
        self._notifications = notifications
        self._identity = identity_verifier
        self._clock = clock

    # ── Registration ──────────────────────────────────────────────────────────

    async def register(
        self, name: str, email: str, password: str, role: str = ROLE_USER
    ) -> RegistrationResult:
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}", field="role")

        email = normalize_email(email)
        existing = await self._users.find_by_email(email)
        if existing is not None:
            if existing.is_verified:
                raise AlreadyRegisteredError("User already exists")
            await self._otps.create_and_send(existing, OTP_PURPOSE_EMAIL_VERIFICATION)
            log.info("registration_pending_resent", user_id=str(existing.id))
            raise PendingVerificationError(
                "Account exists but is not verified. A new OTP has been sent to your email.",
                details={"verification_sent": True},
            )

        now = self._clock()
        try:
            user = await self._users.insert(
                UserDoc(
                    name=name.strip(),
                    email=email,
                    password_hash=self._hasher.hash(password),
                    role=role,
                    is_verified=False,
                    is_active=True,
                    generation=0,
                    created_at=now,
                    updated_at=now,
                )
            )
        except DuplicateKeyError as e:
            raise AlreadyRegisteredError("User already exists") from e

        log.info("user_registered", user_id=str(user.id), role=role)
        await self._otps.create_and_send(user, OTP_PURPOSE_EMAIL_VERIFICATION)
        return RegistrationResult(user_id=str(user.id), email=user.email)

    async def verify_email(
        self, email: str, code: str, meta: Optional[ClientMeta] = None
    ) -> AuthResult:
        otp = await self._otps.verify(email, code, OTP_PURPOSE_EMAIL_VERIFICATION)

        user = await self._users.find_by_id(otp.user_id)
        if user is None:
            raise NotFoundError("User not found")
        if user.is_verified:
            raise AlreadyVerifiedError("Email already verified")

        await self._users.mark_verified(user.id, self._clock())
        user = user.model_copy(update={"is_verified": True})
        log.info("email_verified", user_id=str(user.id))

        await self._notify_best_effort(JOB_WELCOME, user)
        tokens = await self._tokens.issue_pair(user, meta)
        return AuthResult(user=UserProfile.from_doc(user), tokens=tokens)

    async def resend_verification(self, email: str) -> ResendStatus:
        user = await self._users.find_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        if user.is_verified:
            raise AlreadyVerifiedError("Email already verified")
        if not user.is_active:
            raise AccountDisabledError("Account is deactivated")
        return await self._otps.resend(user, OTP_PURPOSE_EMAIL_VERIFICATION)

    # ── Sign-in ───────────────────────────────────────────────────────────────

    async def login(
        self, email: str, password: str, meta: Optional[ClientMeta] = None
    ) -> AuthResult:
        user = await self._users.find_by_email(email)
        if user is None:
            raise InvalidCredentialsError(LOGIN_FAILED)
        if not user.is_active:
            raise AccountDisabledError("Account is deactivated")
        if not user.is_verified:
            raise EmailNotVerifiedError(
                "Please verify your email first", details={"email": user.email}
            )
        if not self._hasher.verify(password, user.password_hash):
            log.info("login_failed", user_id=str(user.id), reason="bad_password")
            raise InvalidCredentialsError(LOGIN_FAILED)

        return await self._complete_sign_in(user, meta)

    async def admin_login(
        self, email: str, password: str, meta: Optional[ClientMeta] = None
    ) -> AuthResult:
        user = await self._users.find_by_email(email)
        if (
            user is None
            or not user.is_admin
            or not self._hasher.verify(password, user.password_hash)
        ):
            log.info("admin_login_failed")
            raise InvalidCredentialsError(ADMIN_LOGIN_FAILED)
        if not user.is_active:
            raise AccountDisabledError("Account is deactivated")

        return await self._complete_sign_in(user, meta)

    async def google_login(
        self, id_token: str, meta: Optional[ClientMeta] = None
    ) -> AuthResult:
        identity = await self._identity.verify(id_token)
        now = self._clock()
        is_new = False

        user = await self._users.find_by_google_id_or_email(identity.subject, identity.email)
        if user is None:
            try:
                user = await self._users.insert(
                    UserDoc(
                        name=identity.display_name,
                        email=identity.email,
                        password_hash=None,
                        google_id=identity.subject,
                        profile_picture=identity.picture_url,
                        is_verified=True,
                        is_active=True,
                        generation=0,
                        created_at=now,
                        updated_at=now,
                    )
                )
                is_new = True
                log.info("user_registered", user_id=str(user.id), provider="google")
            except DuplicateKeyError:
                # Registered concurrently; link to that account instead
                user = await self._users.find_by_email(identity.email)
                if user is None:
                    raise

        if not user.is_active:
            raise AccountDisabledError("Account is deactivated")

        if not is_new:
            if user.google_id and user.google_id != identity.subject:
                log.warning("google_link_conflict", user_id=str(user.id))
                raise IdentityVerificationError(
                    "This email is linked to a different Google account"
                )
            if (
                user.google_id != identity.subject
                or not user.is_verified
                or (identity.picture_url and not user.profile_picture)
            ):
                user = await self._users.link_google_identity(
                    user.id, identity.subject, identity.picture_url, now
                ) or user
                log.info("google_identity_linked", user_id=str(user.id))
        else:
            await self._notify_best_effort(JOB_WELCOME, user)

        result = await self._complete_sign_in(user, meta)
        return AuthResult(user=result.user, tokens=result.tokens, is_new=is_new)

    async def refresh(self, raw_refresh: str, meta: Optional[ClientMeta] = None) -> TokenPair:
        return await self._tokens.rotate(raw_refresh, meta)

    # ── Password recovery ─────────────────────────────────────────────────────

    async def forgot_password(self, email: str) -> None:
        """Start a password reset. Returns nothing whether or not the email exists."""
        user = await self._users.find_by_email(email)
        if user is None or not user.is_active:
            log.info("password_reset_requested", matched=False)
            return None

        now = self._clock()
        token = generate_reset_token()
        await self._users.set_reset_token(
            user.id,
            hash_token(token),
            now + timedelta(seconds=self._settings.password_reset_ttl_seconds),
            now,
        )
        reset_link = f"{self._settings.frontend_url.rstrip('/')}/reset-password?token={token}"

        try:
            await self._notifications.publish(
                JOB_FORGOT_PASSWORD,
                user.email,
                {"name": user.name, "reset_link": reset_link},
            )
        except NotificationUnavailableError:
            log.error("password_reset_email_failed", user_id=str(user.id))
            return None

        log.info("password_reset_requested", matched=True, user_id=str(user.id))
        return None

    async def reset_password(self, token: str, new_password: str) -> None:
        user = await self._users.reset_password_with_token(
            hash_token(token), self._hasher.hash(new_password), self._clock()
        )
        if user is None:
            raise InvalidOrExpiredTokenError("Invalid or expired reset token")

        await self._tokens.revoke_refresh_tokens(user.id)
        log.info("password_reset_completed", user_id=str(user.id), generation=user.generation)
        await self._notify_best_effort(JOB_PASSWORD_CHANGED, user)

    async def change_password(
        self, user_id: Any, current_password: str, new_password: str
    ) -> None:
        user = await self._users.find_by_id(user_id)
        if user is None or not user.is_active:
            raise AccountUnavailableError("User not found or inactive")
        if not self._hasher.verify(current_password, user.password_hash):
            raise InvalidCredentialsError("Current password is incorrect", field="current_password")

        updated = await self._users.update_password(
            user.id, self._hasher.hash(new_password), self._clock()
        )
        if updated is None:
            raise AccountUnavailableError("User not found or inactive")

        await self._tokens.revoke_refresh_tokens(user.id)
        log.info("password_changed", user_id=str(user.id), generation=updated.generation)
        await self._notify_best_effort(JOB_PASSWORD_CHANGED, updated)

    # ── Sessions and profile ──────────────────────────────────────────────────

    async def logout(self, raw_refresh: Optional[str], user_id: Any = None) -> bool:
        return await self._tokens.revoke(raw_refresh, user_id)

    async def logout_all(self, user_id: Any) -> int:
        return await self._tokens.revoke_all(user_id)

    async def get_sessions(self, user_id: Any) -> list[SessionInfo]:
        return await self._tokens.list_sessions(user_id)

    async def revoke_session(self, user_id: Any, token_id: str) -> None:
        await self._tokens.revoke_session(user_id, token_id)

    async def get_profile(self, user_id: Any) -> UserProfile:
        user = await self._users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return UserProfile.from_doc(user)

    # ── Helpers ───────────────────────────────────────────────────────────────

    async def _complete_sign_in(
        self, user: UserDoc, meta: Optional[ClientMeta]
    ) -> AuthResult:
        now = self._clock()
        await self._users.update_last_login(user.id, now)
        user = user.model_copy(update={"last_login_at": now})
        tokens = await self._tokens.issue_pair(user, meta)
        log.info("user_logged_in", user_id=str(user.id), role=user.role)
        return AuthResult(user=UserProfile.from_doc(user), tokens=tokens)

    async def _notify_best_effort(self, job_type: str, user: UserDoc) -> None:
        try:
            await self._notifications.publish(job_type, user.email, {"name": user.name})
        except NotificationUnavailableError:
            log.warning("notification_skipped", job_type=job_type, user_id=str(user.id))
