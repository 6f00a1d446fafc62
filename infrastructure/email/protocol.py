"""EmailProvider protocol — the direct-send path depends on this, not the concrete implementation."""

from typing import Protocol


class EmailProvider(Protocol):
    async def send_otp_email(
        self, email: str, name: str, otp_code: str, purpose: str
    ) -> bool: ...

    async def send_password_reset_email(
        self, email: str, name: str, reset_link: str
    ) -> bool: ...

    async def send_welcome_email(self, email: str, name: str) -> bool: ...

    async def send_password_changed_email(self, email: str, name: str) -> bool: ...
