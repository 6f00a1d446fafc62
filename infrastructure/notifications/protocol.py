"""NotificationChannel protocol and the job types it carries.

publish() returning False means "not delivered to this channel", never "lost":
the fallback decorator turns it into a direct send.
"""

from typing import Any, Protocol

JOB_OTP_VERIFICATION = "otp_verification"
JOB_FORGOT_PASSWORD = "forgot_password"
JOB_WELCOME = "welcome"
JOB_PASSWORD_CHANGED = "password_changed"

JOB_TYPES = (JOB_OTP_VERIFICATION, JOB_FORGOT_PASSWORD, JOB_WELCOME, JOB_PASSWORD_CHANGED)


class NotificationChannel(Protocol):
    async def publish(
        self, job_type: str, destination: str, payload: dict[str, Any]
    ) -> bool: ...
