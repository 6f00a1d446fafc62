"""
OtpService — one-time code issuance, verification and resend.

Per (account, purpose) a code moves none -> pending -> consumed, superseded or
expired. Only the SHA-256 of the code is stored; the plaintext leaves the
process once, inside the notification.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from config import OtpSettings
from errors import (
    IncorrectOtpError,
    OtpAttemptsExceededError,
    OtpCooldownError,
    OtpNotFoundError,
)
from infrastructure.notifications.protocol import (
    JOB_FORGOT_PASSWORD,
    JOB_OTP_VERIFICATION,
    NotificationChannel,
)
from repositories.otp_repository import OtpRepository
from schemas.models.token import OTP_PURPOSE_FORGOT_PASSWORD, OtpDoc
from schemas.models.user import UserDoc
from shared.crypto import digests_match, hash_token
from shared.datetime_utils import Clock, as_utc, seconds_until, utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class ResendStatus:
    resend_allowed_at: datetime
    expires_at: datetime


class OtpService:
    def __init__(
        self,
        otps: OtpRepository,
        notifications: NotificationChannel,
        settings: OtpSettings,
        clock: Clock = utcnow,
    ) -> None:
        self._otps = otps
        self._notifications = notifications
        self._settings = settings
        self._clock = clock

    async def create_and_send(self, user: UserDoc, purpose: str) -> OtpDoc:
        """Supersede any pending code, store a new one and send it.

        NotificationUnavailableError propagates when no channel accepted the
        code; the stored record is left in place and expires normally.
        """
        now = self._clock()
        superseded = await self._otps.supersede_pending(user.id, purpose)

        code = generate_otp_code()
        otp = await self._otps.insert(
            OtpDoc(
                user_id=user.id,
                email=user.email,
                code_hash=hash_token(code),
                purpose=purpose,
                expires_at=now + timedelta(minutes=self._settings.otp_expires_minutes),
                resend_allowed_at=now
                + timedelta(seconds=self._settings.otp_resend_cooldown_seconds),
                attempts=0,
                used=False,
                created_at=now,
            )
        )
        log.info(
            "otp_created",
            user_id=str(user.id),
            purpose=purpose,
            superseded=superseded,
        )

        job_type = (
            JOB_FORGOT_PASSWORD
            if purpose == OTP_PURPOSE_FORGOT_PASSWORD
            else JOB_OTP_VERIFICATION
        )
        await self._notifications.publish(
            job_type,
            user.email,
            {"name": user.name, "otp": code, "purpose": purpose},
        )
        return otp

    async def verify(self, email: str, code: str, purpose: str) -> OtpDoc:
        """Consume the live code for (email, purpose) if *code* matches."""
        max_attempts = self._settings.otp_max_attempts
        otp = await self._otps.find_latest_valid(email, purpose, self._clock())
        if otp is None:
            raise OtpNotFoundError("OTP not found or expired. Please request a new one.")

        # The attempt is counted before comparing; the cap is enforced by the store
        counted = await self._otps.increment_attempts(otp.id, max_attempts)
        if counted is None:
            # Either the cap was reached or the code was consumed or superseded
            current = await self._otps.find_latest_valid(email, purpose, self._clock())
            if current is not None and current.id == otp.id:
                raise OtpAttemptsExceededError("Too many attempts. Please request a new OTP.")
            raise OtpNotFoundError("OTP not found or expired. Please request a new one.")

        if not digests_match(hash_token(code.strip()), counted.code_hash):
            remaining = max_attempts - counted.attempts
            log.info(
                "otp_incorrect",
                user_id=str(counted.user_id),
                purpose=purpose,
                attempts=counted.attempts,
            )
            if remaining <= 0:
                raise OtpAttemptsExceededError("Too many attempts. Please request a new OTP.")
            raise IncorrectOtpError(
                f"Incorrect OTP. {remaining} attempt(s) remaining.",
                field="otp",
                details={"remaining_attempts": remaining},
            )

        if not await self._otps.mark_used(counted.id):
            raise OtpNotFoundError("OTP not found or expired. Please request a new one.")

        log.info("otp_verified", user_id=str(counted.user_id), purpose=purpose)
        return counted.model_copy(update={"used": True})

    async def resend(self, user: UserDoc, purpose: str) -> ResendStatus:
        now = self._clock()
        pending = await self._otps.find_latest_pending(user.id, purpose)
        if (
            pending is not None
            and as_utc(pending.expires_at) > now
            and as_utc(pending.resend_allowed_at) > now
        ):
            wait = seconds_until(pending.resend_allowed_at, now)
            raise OtpCooldownError(
                f"Please wait {wait} second(s) before requesting a new OTP.",
                details={"seconds_remaining": wait},
            )

        otp = await self.create_and_send(user, purpose)
        return ResendStatus(resend_allowed_at=otp.resend_allowed_at, expires_at=otp.expires_at)
