"""
Robots Compliance Gate

Fetches, parses, caches and evaluates robots.txt per origin:
- Consecutive User-agent lines share one rule group
- Rules before any User-agent line belong to "*"
- Longest match wins, Allow wins ties
- "*" wildcards and a trailing "$" end anchor
- Missing or unreachable robots.txt means no restrictions, cached like a hit
"""

import logging
import re
import time
from functools import lru_cache
from typing import Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from crawlerd.errors import FetchError, PolicyViolation
from crawlerd.models import RobotsPolicy, RuleSet

logger = logging.getLogger(__name__)

DEFAULT_AGENT = "CrawlerdBot"
CACHE_TTL_SECONDS = 10 * 60
FETCH_TIMEOUT_SECONDS = 5.0

_DEFAULT_PORTS = {"http": 80, "https": 443}
_COMMENT_RE = re.compile(r"#.*")
_LINE_SPLIT_RE = re.compile(r"\r?\n")


def origin_from(url: str) -> str:
    """Return scheme://host[:port] for a URL, dropping default ports.

    Raises:
        ValueError: If the URL has no scheme or host
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Not an absolute URL: {url!r}")

    scheme = parsed.scheme.lower()
    host = parsed.hostname
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal
    port = parsed.port
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        return f"{scheme}://{host}:{port}"
    return f"{scheme}://{host}"


def robots_url_for(origin: str) -> str:
    return origin.rstrip("/") + "/robots.txt"


def path_with_query(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or "/"
    if parsed.query:
        path += "?" + parsed.query
    return path


def parse_robots(text: str, fetched_at: float = 0.0) -> RobotsPolicy:
    """Parse robots.txt content into a policy.

    Args:
        text: Raw robots.txt body
        fetched_at: Clock reading to stamp on the policy

    Returns:
        RobotsPolicy whose by_agent always contains "*"
    """
    by_agent: Dict[str, RuleSet] = {}
    sitemaps: List[str] = []

    current_agents: List[str] = []
    last_key: Optional[str] = None

    def ensure_agent(raw: str) -> str:
        agent = raw.lower()
        if agent not in by_agent:
            by_agent[agent] = RuleSet()
        return agent

    for raw in _LINE_SPLIT_RE.split(text):
        line = _COMMENT_RE.sub("", raw).strip()
        if not line:
            continue

        key, sep, value = line.partition(":")
        if not sep:
            continue  # malformed

        key = key.strip().lower()
        value = value.strip()

        if key == "user-agent":
            agent = ensure_agent(value)
            if last_key == "user-agent":
                current_agents.append(agent)
            else:
                current_agents = [agent]
            last_key = key
        elif key in ("allow", "disallow"):
            if not current_agents:
                current_agents = [ensure_agent("*")]
            for agent in current_agents:
                getattr(by_agent[agent], key).append(value)
            last_key = key
        elif key == "sitemap":
            if value:
                sitemaps.append(value)
        # Anything else (crawl-delay, host, ...) is ignored

    if "*" not in by_agent:
        by_agent["*"] = RuleSet()

    return RobotsPolicy(by_agent=by_agent, fetched_at=fetched_at, sitemaps=sitemaps)


@lru_cache(maxsize=2048)
def _compile_pattern(pattern: str) -> "re.Pattern[str]":
    anchored = pattern.endswith("$")
    body = pattern[:-1] if anchored else pattern
    regex = re.escape(body).replace(r"\*", ".*")
    if anchored:
        regex += r"\Z"
    return re.compile(regex)


def match_length(pattern: str, path: str) -> int:
    """Length of the path prefix a pattern matches, or -1 for no match.

    ``*`` matches any run of characters and a trailing ``$`` anchors the
    pattern to the end of the path. An empty pattern matches nothing, so a
    bare ``Disallow:`` restricts nothing.
    """
    if not pattern:
        return -1
    m = _compile_pattern(pattern).match(path)
    return m.end() if m else -1


def evaluate(rules: RuleSet, path: str) -> bool:
    """Apply longest-match-wins with Allow winning ties."""
    best_allow = max((match_length(p, path) for p in rules.allow), default=-1)
    best_disallow = max((match_length(p, path) for p in rules.disallow), default=-1)

    if best_allow == -1 and best_disallow == -1:
        return True
    return best_allow >= best_disallow


class RobotsGate:
    """
    Per-origin robots.txt gate with a TTL cache.

    Use as an async context manager, or call close() when done:

        async with RobotsGate(agent="MyBot") as gate:
            await gate.ensure_allowed_or_raise("https://example.com/page")

    The cache is shared by every job in the process. Concurrent refreshes of
    the same stale origin may fetch twice; the last write wins.
    """

    def __init__(
        self,
        enabled: bool = True,
        agent: str = DEFAULT_AGENT,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the gate.

        Args:
            enabled: When False, ensure_allowed_or_raise() never blocks
            agent: Agent name used to pick a robots.txt group
            ttl_seconds: How long a fetched (or failed) policy stays fresh
            timeout: robots.txt fetch timeout in seconds
            client: Optional shared httpx client (not closed by the gate)
            clock: Monotonic clock, injectable for tests
        """
        self.enabled = enabled
        self.agent = agent
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._clock = clock
        self._cache: Dict[str, RobotsPolicy] = {}

    @classmethod
    def from_config(cls, config) -> "RobotsGate":
        return cls(
            enabled=config.respect_robots,
            agent=config.robots_agent,
            ttl_seconds=config.robots_ttl_seconds,
            timeout=config.robots_timeout,
        )

    async def __aenter__(self) -> "RobotsGate":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": self.agent},
            )
            self._owns_client = True
        return self._client

    def is_fresh(self, policy: RobotsPolicy) -> bool:
        return self._clock() - policy.fetched_at < self.ttl_seconds

    def cached(self, origin: str) -> Optional[RobotsPolicy]:
        """Cached policy for an origin, fresh or not."""
        return self._cache.get(origin)

    def invalidate(self, origin: Optional[str] = None) -> None:
        """Drop one origin from the cache, or everything."""
        if origin is None:
            self._cache.clear()
        else:
            self._cache.pop(origin, None)

    async def _fetch(self, origin: str) -> str:
        url = robots_url_for(origin)
        try:
            response = await self._get_client().get(url, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}")
        return response.text

    async def get_policy(self, origin: str) -> RobotsPolicy:
        """Return the policy for an origin, refetching when stale."""
        cached = self._cache.get(origin)
        if cached is not None and self.is_fresh(cached):
            return cached

        try:
            text = await self._fetch(origin)
        except FetchError as e:
            logger.info(f"No usable robots.txt for {origin} ({e.reason}); allowing all")
            policy = parse_robots("", fetched_at=self._clock())
        else:
            policy = parse_robots(text, fetched_at=self._clock())
            logger.debug(
                f"Loaded robots.txt for {origin}: "
                f"{len(policy.by_agent)} agent group(s)"
            )

        self._cache[origin] = policy
        return policy

    async def is_allowed(self, target_url: str, user_agent: Optional[str] = None) -> bool:
        """Check a URL against its origin's robots.txt.

        Args:
            target_url: Absolute URL to check
            user_agent: Agent name for group selection (defaults to the gate's agent)

        Returns:
            True if the URL may be fetched
        """
        policy = await self.get_policy(origin_from(target_url))
        rules = policy.rules_for(user_agent or self.agent)
        if rules is None:
            return True
        return evaluate(rules, path_with_query(target_url))

    async def ensure_allowed_or_raise(self, target_url: str) -> None:
        """Raise PolicyViolation if robots.txt forbids the URL.

        No-op when the gate is disabled.
        """
        if not self.enabled:
            return

        if not await self.is_allowed(target_url, self.agent):
            logger.warning(f"robots.txt disallows {target_url} for agent '{self.agent}'")
            raise PolicyViolation(target_url, self.agent)
