"""
Email worker — consumes notification jobs from RabbitMQ and sends them.

Jobs are the JSON bodies written by RabbitMQChannel:
``{"type": <job type>, "to": <email>, "data": {...}}``. A job that cannot be
parsed or delivered is rejected without requeue; the broker's message TTL
bounds how long anything lingers.
"""

import json
from typing import Any

import aio_pika
import httpx

from config import AppSettings
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.notifications.direct import DirectEmailChannel
from infrastructure.notifications.protocol import JOB_TYPES, NotificationChannel
from infrastructure.notifications.rabbitmq import declare_email_queue
from shared.logging import get_logger

log = get_logger(__name__)


class EmailJobError(Exception):
    """A queued job was malformed or its delivery failed."""


def parse_job(body: bytes) -> tuple[str, str, dict[str, Any]]:
    try:
        job = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise EmailJobError("Job body is not valid JSON") from e

    if not isinstance(job, dict):
        raise EmailJobError("Job body must be an object")
    job_type, to_email, data = job.get("type"), job.get("to"), job.get("data") or {}
    if job_type not in JOB_TYPES:
        raise EmailJobError(f"Unknown job type: {job_type!r}")
    if not to_email or not isinstance(data, dict):
        raise EmailJobError("Job is missing its destination or payload")
    return job_type, to_email, data


async def handle_email_job(body: bytes, sender: NotificationChannel) -> None:
    """Deliver one queued job; raises EmailJobError if it was not sent."""
    job_type, to_email, data = parse_job(body)
    if not await sender.publish(job_type, to_email, data):
        raise EmailJobError(f"Delivery failed for {job_type} job")
    log.info("email_job_delivered", job_type=job_type, to_email=to_email)


async def EmailWorker(settings: AppSettings) -> None:
    if not settings.rabbitmq.rabbitmq_url:
        raise RuntimeError("RABBITMQ_URL must be set to run the email worker")

    http_client = httpx.AsyncClient(timeout=settings.email.email_timeout_seconds)
    sender = DirectEmailChannel(
        ZeptoMailProvider(
            settings.email,
            http_client,
            app_name=settings.app_name,
            otp_expires_minutes=settings.otp.otp_expires_minutes,
        )
    )

    connection = await aio_pika.connect_robust(settings.rabbitmq.rabbitmq_url)
    try:
        channel = await connection.channel()
        await channel.set_qos(prefetch_count=1)
        queue = await declare_email_queue(channel, settings.rabbitmq.email_queue_name)

        log.info("email_worker_consuming", queue=settings.rabbitmq.email_queue_name)
        async with queue.iterator() as queue_iter:
            async for message in queue_iter:
                # Unexpected errors reject the message and stop the worker
                async with message.process(requeue=False, ignore_processed=True):
                    try:
                        await handle_email_job(message.body, sender)
                    except EmailJobError as e:
                        log.error("email_job_failed", error=str(e))
                        await message.reject(requeue=False)
    finally:
        await connection.close()
        await http_client.aclose()