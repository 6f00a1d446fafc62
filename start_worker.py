#!/usr/bin/env python3
"""
Email Worker Runner

This script starts the asynchronous email worker that consumes notification
jobs from RabbitMQ and delivers them through the email provider.
"""

import sys
import os
import asyncio

# Ensure project root is on the path
ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.insert(0, ROOT_DIR)

from config import AppSettings  # noqa: E402
from shared.logging import get_logger, setup_logging  # noqa: E402
from workers.email_worker import EmailWorker  # noqa: E402


def main():
    """Main function to start the email worker"""
    settings = AppSettings()
    setup_logging(settings.logging)
    log = get_logger("start_worker")
    log.info("email_worker_starting", queue=settings.rabbitmq.email_queue_name)

    try:
        asyncio.run(EmailWorker(settings))
    except KeyboardInterrupt:
        log.info("email_worker_stopped")
    except Exception as e:
        log.error("email_worker_failed", error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
