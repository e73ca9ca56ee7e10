"""
Durable queue transport.

Jobs live in Redis through the BullMQ client, which owns persistence,
delayed delivery, priority and retry with exponential backoff. This module
only builds the queue and worker objects for the rest of the package.
"""

import logging
from typing import Any, Awaitable, Callable

from bullmq import Queue, Worker
from bullmq.custom_errors import UnrecoverableError

logger = logging.getLogger(__name__)

JOB_NAME = "crawl"

Processor = Callable[[Any, str], Awaitable[Any]]


def open_queue(config) -> Queue:
    """Queue handle for producers."""
    return Queue(config.queue_name, {"connection": config.redis_url})


def open_worker(config, processor: Processor, concurrency: int) -> Worker:
    """Start consuming jobs with at most ``concurrency`` in flight."""
    logger.debug(f"Connecting worker to {config.queue_name} at {config.redis_url}")
    return Worker(
        config.queue_name,
        processor,
        {"connection": config.redis_url, "concurrency": concurrency},
    )


def unrecoverable(error: Exception) -> UnrecoverableError:
    """Wrap an error so the transport fails the job without retrying."""
    return UnrecoverableError(str(error))
