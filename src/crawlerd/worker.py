"""
Crawl job consumer.

Each job goes received -> dispatched -> completed | failed:
- the site id is resolved in the registry, falling back to "generic"
- the handler runs (checking robots.txt itself before navigating)
- one outcome record is appended to the sink per attempt
- failures are re-raised so the queue transport can retry them

Writing the outcome is best effort: a sink failure is logged and never
changes the job's result.
"""

import asyncio
import json
import logging
import os
import signal
from typing import Any, Optional, Tuple

from crawlerd.browser import BrowserProvider
from crawlerd.browser_config import BrowserConfig
from crawlerd.errors import PolicyViolation, SinkError, UnknownSite
from crawlerd.jobqueue import open_worker, unrecoverable
from crawlerd.models import CrawlJob, JobOutcome
from crawlerd.robots import RobotsGate
from crawlerd.sink import ResultSink
from crawlerd.sites import SiteContext, build_registry
from crawlerd.sites.registry import GENERIC_SITE, HandlerRegistry, ScrapeFn

logger = logging.getLogger(__name__)


class CrawlWorker:
    """Runs crawl jobs against the handler registry and records outcomes."""

    def __init__(
        self,
        registry: HandlerRegistry,
        sink: ResultSink,
        fallback_site: str = GENERIC_SITE,
        retry_policy_violations: bool = True,
    ):
        """
        Args:
            registry: Site handlers, shared across concurrent jobs
            sink: Outcome record destination
            fallback_site: Handler used when a job's site is not registered
            retry_policy_violations: When False, robots.txt blocks are
                reported to the transport as unrecoverable
        """
        self.registry = registry
        self.sink = sink
        self.fallback_site = fallback_site
        self.retry_policy_violations = retry_policy_violations

    def resolve(self, site: str, job_id: Optional[str] = None, url: Optional[str] = None) -> Tuple[str, ScrapeFn]:
        """Find the handler for a site, falling back to the generic one.

        Returns:
            (resolved site id, handler)

        Raises:
            UnknownSite: If neither the site nor the fallback is registered
        """
        handler = self.registry.resolve(site)
        if handler is not None:
            return site, handler

        fallback = self.registry.resolve(self.fallback_site)
        if fallback is None:
            raise UnknownSite(site, self.registry.list_ids())

        logger.warning(json.dumps({
            "event": "fallback",
            "jobId": job_id,
            "requestedSite": site,
            "resolvedSite": self.fallback_site,
            "url": url,
        }))
        return self.fallback_site, fallback

    async def record(self, outcome: JobOutcome) -> None:
        """Append an outcome to the sink; failures are logged, not raised."""
        record = outcome.to_record()
        try:
            await self.sink.append(record)
        except SinkError as e:
            logger.error(json.dumps({
                "event": "sink-error",
                "jobId": outcome.job_id,
                "message": str(e),
            }))

        try:
            line = json.dumps(record, default=str)
        except (TypeError, ValueError) as e:
            line = json.dumps({
                "event": record["event"],
                "jobId": outcome.job_id,
                "ok": outcome.ok,
                "unloggable": str(e),
            })

        if outcome.ok:
            logger.info(line)
        else:
            logger.error(line)

    async def process(self, job: Any) -> Any:
        """Run one job attempt.

        Args:
            job: Transport job with ``id``, ``data`` and optionally ``attemptsMade``

        Returns:
            The handler's result

        Raises:
            Exception: Whatever failed (validation, UnknownSite, PolicyViolation,
                navigation errors), after the failure has been recorded
        """
        job_id = str(job.id) if job.id is not None else None
        data = job.data
        requested_site = data.get("site") if isinstance(data, dict) else None
        url = data.get("url") if isinstance(data, dict) else None
        attempts_made = getattr(job, "attemptsMade", None)
        attempt = attempts_made + 1 if isinstance(attempts_made, int) else None
        resolved_site = None

        try:
            crawl_job = CrawlJob.from_payload(data)
            resolved_site, handler = self.resolve(crawl_job.site, job_id, crawl_job.url)
            result = await handler(crawl_job.url, crawl_job.meta)
        except Exception as e:
            await self.record(JobOutcome(
                job_id=job_id,
                requested_site=requested_site,
                resolved_site=resolved_site,
                url=url,
                ok=False,
                error=str(e) or type(e).__name__,
                attempt=attempt,
            ))
            raise

        await self.record(JobOutcome(
            job_id=job_id,
            requested_site=requested_site,
            resolved_site=resolved_site,
            url=url,
            ok=True,
            result=result,
            attempt=attempt,
        ))
        return result

    async def handle(self, job: Any, token: Optional[str] = None) -> Any:
        """Transport processor entry point."""
        try:
            return await self.process(job)
        except PolicyViolation as e:
            if self.retry_policy_violations:
                raise
            raise unrecoverable(e) from e


def _install_signal_handlers(stop: asyncio.Event) -> list:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            logger.debug(f"Cannot install handler for {sig.name} on this platform")
            continue
        installed.append(sig)
    return installed


async def run_worker(config, concurrency: Optional[int] = None, stop: Optional[asyncio.Event] = None) -> None:
    """
    Consume crawl jobs until SIGINT/SIGTERM (or ``stop`` is set).

    The browser and robots HTTP client are released on every exit path.
    """
    stop = stop or asyncio.Event()
    concurrency = concurrency or config.concurrency

    async with RobotsGate.from_config(config) as robots, \
            BrowserProvider(BrowserConfig.from_config(config)) as browser:
        context = SiteContext(browser=browser, robots=robots)
        registry = build_registry(context, config.plugins, config.plugins_file)
        crawl_worker = CrawlWorker(
            registry,
            ResultSink(config.results_path),
            retry_policy_violations=config.retry_policy_violations,
        )

        transport_worker = open_worker(config, crawl_worker.handle, concurrency)
        installed = []
        try:
            installed = _install_signal_handlers(stop)
            logger.info(json.dumps({
                "event": "worker-ready",
                "queue": config.queue_name,
                "concurrency": concurrency,
                "pid": os.getpid(),
                "sites": registry.list_ids(),
                "respectRobots": robots.enabled,
            }))

            await stop.wait()
            logger.info("Shutdown requested; waiting for in-flight jobs")
        finally:
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)
            # Stop taking jobs first, then let the context managers release resources
            await transport_worker.close()
            logger.info("Worker stopped")
