"""
Google ID token verification via the tokeninfo endpoint.

Google validates the signature and expiry; we check that the token was minted
for our client id and that it carries an email. Any failure, including the
endpoint being unreachable, is an IdentityVerificationError: a social login is
never allowed through unverified.
"""

from __future__ import annotations

import httpx

from config import GoogleSettings
from errors import IdentityVerificationError
from infrastructure.identity.protocol import ExternalIdentity
from shared.logging import get_logger

log = get_logger(__name__)

TOKENINFO_URL = "https://oauth2.googleapis.com/tokeninfo"


class GoogleIdentityVerifier:
    def __init__(self, settings: GoogleSettings, http_client: httpx.AsyncClient) -> None:
        self._settings = settings
        self._http = http_client

    async def verify(self, raw_credential: str) -> ExternalIdentity:
        if not self._settings.google_client_id:
            log.error("google_verify_failed", reason="client_id_not_configured")
            raise IdentityVerificationError("Google sign-in is not configured")
        if not raw_credential:
            raise IdentityVerificationError("Google ID token is required")

        try:
            response = await self._http.get(
                TOKENINFO_URL,
                params={"id_token": raw_credential},
                timeout=self._settings.google_timeout_seconds,
            )
        except httpx.HTTPError as e:
            log.error(
                "google_verify_failed",
                reason="request_error",
                error=str(e),
                error_type=type(e).__name__,
            )
            raise IdentityVerificationError("Google token verification failed") from e

        if response.status_code != 200:
            log.warning("google_verify_failed", reason="rejected", status_code=response.status_code)
            raise IdentityVerificationError("Invalid Google token")

        try:
            info = response.json()
        except ValueError as e:
            raise IdentityVerificationError("Invalid Google token") from e

        if info.get("aud") != self._settings.google_client_id:
            log.warning("google_verify_failed", reason="audience_mismatch")
            raise IdentityVerificationError("Google token was not issued for this app")

        email = info.get("email")
        subject = info.get("sub")
        if not email or not subject:
            log.warning("google_verify_failed", reason="missing_claims")
            raise IdentityVerificationError("Google token does not include an email")

        # tokeninfo returns claims as strings
        if str(info.get("email_verified", "true")).lower() != "true":
            log.warning("google_verify_failed", reason="email_not_verified")
            raise IdentityVerificationError("Google account email is not verified")

        return ExternalIdentity(
            subject=subject,
            email=email.strip().lower(),
            display_name=info.get("name") or email.split("@")[0],
            picture_url=info.get("picture") or None,
        )
