"""RabbitMQ notification channel (aio-pika).

Jobs go to a durable queue as persistent JSON messages consumed by
workers/email_worker.py. connect_robust() reconnects on its own; while the
broker is down publish() returns False and the caller falls back to a direct
send.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractRobustConnection

from shared.logging import get_logger

log = get_logger(__name__)

# Undelivered jobs are dropped by the broker after 24h
MESSAGE_TTL_MS = 86_400_000
APP_ID = "marketplace-api"


async def declare_email_queue(channel: AbstractChannel, queue_name: str):
    return await channel.declare_queue(
        queue_name,
        durable=True,
        arguments={"x-message-ttl": MESSAGE_TTL_MS},
    )


class RabbitMQChannel:
    def __init__(self, url: str, queue_name: str) -> None:
        self._url = url
        self._queue_name = queue_name
        self._connection: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None

    @property
    def is_connected(self) -> bool:
        return self._channel is not None and not self._channel.is_closed

    async def connect(self) -> bool:
        """Open the connection; a broker outage at startup is not fatal."""
        try:
            self._connection = await aio_pika.connect_robust(self._url)
            self._channel = await self._connection.channel()
            await declare_email_queue(self._channel, self._queue_name)
        except Exception as e:
            log.warning(
                "rabbitmq_unavailable",
                error=str(e),
                error_type=type(e).__name__,
                fallback="direct_send",
            )
            self._connection = None
            self._channel = None
            return False
        log.info("rabbitmq_connected", queue=self._queue_name)
        return True

    async def publish(self, job_type: str, destination: str, payload: dict[str, Any]) -> bool:
        if not self.is_connected:
            log.debug("rabbitmq_publish_skipped", reason="not_connected", job_type=job_type)
            return False

        body = json.dumps({"type": job_type, "to": destination, "data": payload}).encode()
        message = aio_pika.Message(
            body=body,
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            content_type="application/json",
            timestamp=datetime.now(timezone.utc),
            app_id=APP_ID,
        )
        try:
            await self._channel.default_exchange.publish(message, routing_key=self._queue_name)
        except Exception as e:
            log.error(
                "rabbitmq_publish_failed",
                job_type=job_type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        log.debug("rabbitmq_job_published", job_type=job_type, to_email=destination)
        return True

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            log.info("rabbitmq_connection_closed")
        self._connection = None
        self._channel = None
