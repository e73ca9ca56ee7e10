"""Job producer: validates crawl requests and submits them to the queue."""

import logging
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from crawlerd.errors import ValidationError
from crawlerd.jobqueue import JOB_NAME
from crawlerd.models import CrawlJob, EnqueueOptions

logger = logging.getLogger(__name__)


def _coerce_options(options: Union[EnqueueOptions, Dict[str, Any], None]) -> EnqueueOptions:
    if options is None:
        return EnqueueOptions()
    if isinstance(options, EnqueueOptions):
        return options
    try:
        return EnqueueOptions.model_validate(options)
    except PydanticValidationError as e:
        errors = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ValidationError("Invalid enqueue options: " + "; ".join(errors), errors) from e


class CrawlProducer:
    """
    Shapes crawl requests and forwards them to the durable queue.

    No robots checking happens here; that is done when the job runs.
    """

    def __init__(self, queue):
        """
        Args:
            queue: Transport queue exposing ``add(name, data, opts)`` and ``close()``
        """
        self.queue = queue

    async def __aenter__(self) -> "CrawlProducer":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        await self.queue.close()

    async def enqueue(
        self,
        job: Union[CrawlJob, Dict[str, Any]],
        options: Union[EnqueueOptions, Dict[str, Any], None] = None,
    ) -> Any:
        """Validate and submit a crawl job.

        Args:
            job: ``{"site", "url", "meta"?}`` mapping or CrawlJob
            options: Attempts, backoff, delay and priority overrides

        Returns:
            The transport's job handle (has an ``id``)

        Raises:
            ValidationError: If site or url is missing or malformed
        """
        crawl_job = CrawlJob.from_payload(job)
        opts = _coerce_options(options)

        handle = await self.queue.add(JOB_NAME, crawl_job.to_payload(), opts.to_job_options())
        logger.info(
            f"Enqueued job {getattr(handle, 'id', None)}: "
            f"site={crawl_job.site} url={crawl_job.url}"
        )
        return handle
