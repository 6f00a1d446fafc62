"""ZeptoMail implementation of EmailProvider.

Bodies are short inline HTML/text; the transactional wording is the only
content. Every send returns a bool and never raises, so the notification
layer can decide what a failed delivery means.
"""

from html import escape

import httpx

from config import EmailSettings
from schemas.models.token import OTP_PURPOSE_FORGOT_PASSWORD
from shared.logging import get_logger

log = get_logger(__name__)

_ZEPTO_API_URL = "https://api.zeptomail.in/v1.1/email"


class ZeptoMailProvider:
    def __init__(
        self,
        settings: EmailSettings,
        http_client: httpx.AsyncClient,
        app_name: str = "Marketplace",
        otp_expires_minutes: int = 10,
    ) -> None:
        self._settings = settings
        self._http = http_client
        self._app_name = app_name
        self._otp_expires_minutes = otp_expires_minutes

    async def _send(self, to_email: str, to_name: str, subject: str, text_body: str) -> bool:
        if not self._settings.zepto_api_token:
            log.error("email_send_failed", reason="token_not_configured")
            return False

        html_body = "".join(
            f"<p>{escape(line)}</p>" for line in text_body.split("\n\n") if line
        )
        payload: dict = {
            "from": {
                "address": self._settings.zepto_from_email,
                "name": self._settings.zepto_from_name,
            },
            "to": [
                {
                    "email_address": {
                        "address": to_email,
                        "name": to_name or to_email,
                    }
                }
            ],
            "subject": subject,
            "htmlbody": html_body,
            "textbody": text_body,
        }

        token = self._settings.zepto_api_token
        if not token.startswith("Zoho-enczapikey "):
            token = f"Zoho-enczapikey {token}"

        headers = {"Authorization": token, "Content-Type": "application/json"}

        try:
            response = await self._http.post(_ZEPTO_API_URL, json=payload, headers=headers)
        except Exception as e:
            log.error(
                "email_send_error",
                to_email=to_email,
                subject=subject,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if response.status_code in (200, 201, 202):
            log.info("email_sent_success", to_email=to_email, subject=subject)
            return True
        log.error(
            "email_send_failed",
            to_email=to_email,
            subject=subject,
            status_code=response.status_code,
            response=response.text[:200],
        )
        return False

    async def send_otp_email(self, email: str, name: str, otp_code: str, purpose: str) -> bool:
        if purpose == OTP_PURPOSE_FORGOT_PASSWORD:
            subject = f"Your password reset code - {self._app_name}"
            intro = "Use the code below to reset your password."
        else:
            subject = f"Verify your email - {self._app_name}"
            intro = "Enter the code below in the app to verify your email address."
        text_body = (
            f"Hi {name},\n\n"
            f"{intro}\n\n"
            f"Your one-time code is: {otp_code}\n\n"
            f"It is valid for {self._otp_expires_minutes} minutes. Never share it with anyone."
        )
        return await self._send(email, name, subject, text_body)

    async def send_password_reset_email(self, email: str, name: str, reset_link: str) -> bool:
        subject = f"Reset your password - {self._app_name}"
        text_body = (
            f"Hi {name},\n\n"
            f"We received a request to reset your password. Open this link to continue:\n\n"
            f"{reset_link}\n\n"
            f"The link expires in 1 hour. If you did not ask for this, ignore this email."
        )
        return await self._send(email, name, subject, text_body)

    async def send_welcome_email(self, email: str, name: str) -> bool:
        subject = f"Welcome to {self._app_name}!"
        text_body = (
            f"Hi {name}, welcome aboard!\n\n"
            f"Your account has been verified. You can now sign in."
        )
        return await self._send(email, name, subject, text_body)

    async def send_password_changed_email(self, email: str, name: str) -> bool:
        subject = f"Password changed - {self._app_name}"
        text_body = (
            f"Hi {name},\n\n"
            f"Your password was changed and every session was signed out.\n\n"
            f"If this was not you, contact support immediately."
        )
        return await self._send(email, name, subject, text_body)
