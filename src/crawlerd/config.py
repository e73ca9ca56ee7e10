from dotenv import load_dotenv
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import os

load_dotenv()  # Loads variables from .env file

def env_int(name: str, default: int) -> int:
    """Read an integer env var, keeping the default when unset or malformed."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    """Read a boolean env var. Only "1" and "true" (any case) are truthy."""
    value = os.getenv(name)
    if value is None:
        return default
    return value == "1" or value.lower() == "true"


def env_list(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def env_choice(name: str, choices: Sequence[str], default: str) -> str:
    """Read a lowercase choice, keeping the default for unknown values."""
    value = os.getenv(name, "").strip().lower()
    return value if value in choices else default


@dataclass
class Config:
    """Configuration for the crawl worker, producer and CLI."""
    redis_url: str = "redis://127.0.0.1:6379"
    queue_name: str = "crawl"

    # Robots compliance
    respect_robots: bool = True
    robots_agent: str = "CrawlerdBot"
    robots_ttl_seconds: float = 600.0
    robots_timeout: float = 5.0
    retry_policy_violations: bool = True

    # Worker
    concurrency: int = 2
    results_path: str = "data/results.jsonl"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "text"

    # Browser
    headless: bool = True
    proxy_server: Optional[str] = None
    proxy_username: Optional[str] = None
    proxy_password: Optional[str] = None
    locale: str = "en-US"
    timezone_id: str = "America/New_York"
    user_agent: Optional[str] = None

    # Plugins
    plugins: List[str] = field(default_factory=list)
    plugins_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables.

        Returns:
            Config: Configuration instance with values from environment
        """
        return cls(
            redis_url=os.getenv("REDIS_URL", "redis://127.0.0.1:6379"),
            queue_name=os.getenv("QUEUE_NAME", "crawl"),
            respect_robots=env_bool("RESPECT_ROBOTS", True),
            robots_agent=os.getenv("ROBOTS_AGENT", "CrawlerdBot"),
            robots_ttl_seconds=env_float("ROBOTS_TTL_SECONDS", 600.0),
            robots_timeout=env_float("ROBOTS_TIMEOUT", 5.0),
            retry_policy_violations=env_bool("RETRY_POLICY_VIOLATIONS", True),
            concurrency=max(1, env_int("CONCURRENCY", 2)),
            results_path=os.getenv("RESULTS_PATH", "data/results.jsonl"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            log_format=env_choice("LOG_FORMAT", ("text", "json"), "text"),
            headless=not os.getenv("HEADFUL"),
            proxy_server=(
                os.getenv("PLAYWRIGHT_PROXY")
                or os.getenv("HTTP_PROXY")
                or os.getenv("HTTPS_PROXY")
                or None
            ),
            proxy_username=os.getenv("PROXY_USERNAME") or None,
            proxy_password=os.getenv("PROXY_PASSWORD") or None,
            locale=os.getenv("LOCALE") or "en-US",
            timezone_id=os.getenv("TZ") or "America/New_York",
            user_agent=os.getenv("UA") or None,
            plugins=env_list("CRAWL_PLUGINS"),
            plugins_file=os.getenv("CRAWL_PLUGINS_FILE") or None,
        )
