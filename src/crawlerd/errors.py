"""Exception types raised by the crawl pipeline."""

from typing import Iterable, List, Optional


class CrawlerError(Exception):
    """Base class for crawlerd errors."""


class PolicyViolation(CrawlerError):
    """A robots.txt policy forbids fetching the URL."""

    def __init__(self, url: str, agent: str):
        self.url = url
        self.agent = agent
        super().__init__(f"Blocked by robots.txt for agent '{agent}': {url}")


class UnknownSite(CrawlerError):
    """No handler is registered for a site and there is no fallback."""

    def __init__(self, site: str, known: Iterable[str] = ()):
        self.site = site
        self.known = list(known)
        listing = ", ".join(self.known) if self.known else "(none)"
        super().__init__(f"Unknown site '{site}'. Known sites: {listing}")


class InvalidId(CrawlerError, ValueError):
    """A handler was registered with an empty or non-string id."""


class ValidationError(CrawlerError, ValueError):
    """A crawl job submission is malformed."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)


class SinkError(CrawlerError):
    """An outcome record could not be persisted."""


class FetchError(CrawlerError):
    """robots.txt could not be fetched (network error, timeout, non-2xx)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")
