"""Direct email channel: dispatches a job straight to an EmailProvider.

Used as the fallback when the queue is unavailable, and by the email worker
to deliver jobs it consumes.
"""

from __future__ import annotations

from typing import Any

from infrastructure.email.protocol import EmailProvider
from infrastructure.notifications.protocol import (
    JOB_FORGOT_PASSWORD,
    JOB_OTP_VERIFICATION,
    JOB_PASSWORD_CHANGED,
    JOB_WELCOME,
)
from shared.logging import get_logger

log = get_logger(__name__)


class DirectEmailChannel:
    def __init__(self, provider: EmailProvider) -> None:
        self._provider = provider

    async def publish(self, job_type: str, destination: str, payload: dict[str, Any]) -> bool:
        name = payload.get("name") or destination

        if job_type == JOB_OTP_VERIFICATION:
            return await self._provider.send_otp_email(
                destination, name, payload["otp"], payload.get("purpose", "")
            )
        if job_type == JOB_FORGOT_PASSWORD:
            if "reset_link" in payload:
                return await self._provider.send_password_reset_email(
                    destination, name, payload["reset_link"]
                )
            return await self._provider.send_otp_email(
                destination, name, payload["otp"], payload.get("purpose", "")
            )
        if job_type == JOB_WELCOME:
            return await self._provider.send_welcome_email(destination, name)
        if job_type == JOB_PASSWORD_CHANGED:
            return await self._provider.send_password_changed_email(destination, name)

        log.warning("notification_unknown_job_type", job_type=job_type)
        return False
