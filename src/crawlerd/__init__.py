"""Queue-driven page crawler with robots.txt compliance."""

__version__ = "0.1.0"

from crawlerd.config import Config
from crawlerd.errors import (
    CrawlerError,
    PolicyViolation,
    UnknownSite,
    InvalidId,
    ValidationError,
    SinkError,
    FetchError,
)
from crawlerd.models import (
    CrawlJob,
    EnqueueOptions,
    RuleSet,
    RobotsPolicy,
    JobOutcome,
)
from crawlerd.robots import RobotsGate, parse_robots, evaluate
from crawlerd.browser import BrowserProvider
from crawlerd.browser_config import BrowserConfig
from crawlerd.sink import ResultSink
from crawlerd.sites import HandlerRegistry, SiteContext, build_registry
from crawlerd.producer import CrawlProducer
from crawlerd.worker import CrawlWorker, run_worker

__all__ = [
    "Config",
    # Errors
    "CrawlerError",
    "PolicyViolation",
    "UnknownSite",
    "InvalidId",
    "ValidationError",
    "SinkError",
    "FetchError",
    # Models
    "CrawlJob",
    "EnqueueOptions",
    "RuleSet",
    "RobotsPolicy",
    "JobOutcome",
    # Services
    "RobotsGate",
    "parse_robots",
    "evaluate",
    "BrowserProvider",
    "BrowserConfig",
    "ResultSink",
    "HandlerRegistry",
    "SiteContext",
    "build_registry",
    "CrawlProducer",
    "CrawlWorker",
    "run_worker",
]
