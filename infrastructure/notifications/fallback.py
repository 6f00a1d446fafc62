"""Queue-first notification delivery with a direct-send fallback."""

from __future__ import annotations

from typing import Any, Optional

from errors import NotificationUnavailableError
from infrastructure.notifications.protocol import NotificationChannel
from shared.logging import get_logger

log = get_logger(__name__)


class FallbackNotificationChannel:
    """Try the primary channel, then the fallback.

    A missing primary (no broker configured) goes straight to the fallback.
    Raises NotificationUnavailableError only when neither accepted the job.
    """

    def __init__(
        self, primary: Optional[NotificationChannel], fallback: NotificationChannel
    ) -> None:
        self._primary = primary
        self._fallback = fallback

    async def publish(self, job_type: str, destination: str, payload: dict[str, Any]) -> bool:
        if self._primary is not None:
            if await self._primary.publish(job_type, destination, payload):
                return True
            log.info("notification_fallback_direct", job_type=job_type, to_email=destination)

        if await self._fallback.publish(job_type, destination, payload):
            return True

        log.error("notification_unavailable", job_type=job_type, to_email=destination)
        raise NotificationUnavailableError(
            "Unable to send email right now. Please try again later."
        )
