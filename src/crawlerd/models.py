"""Data models for crawl jobs, robots policies and job outcomes."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from crawlerd.errors import ValidationError


class CrawlJob(BaseModel):
    """Queue payload for a single crawl request.

    Duplicate (site, url) pairs are allowed; a job's identity is the id the
    transport assigns to it.
    """

    site: str = Field(min_length=1, description="Registered site handler id")
    url: str = Field(description="Absolute http(s) URL to crawl")
    meta: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Free-form per-job options passed to the handler"
    )

    @field_validator("site")
    @classmethod
    def _site_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("site must not be blank")
        return value

    @field_validator("url")
    @classmethod
    def _url_is_absolute(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"url must be an absolute http(s) URL, got {value!r}")
        return value

    @classmethod
    def from_payload(cls, payload: Any) -> "CrawlJob":
        """Validate a raw payload, raising crawlerd's ValidationError."""
        if isinstance(payload, cls):
            return payload
        if not isinstance(payload, dict):
            raise ValidationError(
                f"crawl job must be a mapping, got {type(payload).__name__}"
            )
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or 'job'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ValidationError(
                "Invalid crawl job: " + "; ".join(errors), errors
            ) from e

    def to_payload(self) -> Dict[str, Any]:
        """Queue payload, omitting meta when it was not given."""
        return self.model_dump(exclude_none=True)


class BackoffOptions(BaseModel):
    """Retry backoff forwarded to the transport as ``{type, delay}``."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["exponential", "fixed"] = "exponential"
    delay: int = Field(default=2000, ge=0, description="Base delay in milliseconds")


class EnqueueOptions(BaseModel):
    """Submission options forwarded to the durable queue.

    Keys follow the queue's wire shape (``delay``, ``backoff``,
    ``removeOnComplete``); the snake_case field names are accepted too.
    Unknown keys are rejected rather than dropped.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    attempts: int = Field(default=3, ge=1, description="Total delivery attempts")
    backoff: BackoffOptions = Field(default_factory=BackoffOptions)
    delay: Optional[int] = Field(default=None, ge=0, description="Milliseconds before first attempt")
    priority: Optional[int] = Field(default=None, ge=0, description="Lower runs first")
    remove_on_complete: int = Field(default=1000, ge=0, alias="removeOnComplete")
    remove_on_fail: int = Field(default=5000, ge=0, alias="removeOnFail")

    @field_validator("backoff", mode="before")
    @classmethod
    def _backoff_from_number(cls, value: Any) -> Any:
        # A bare number is the exponential base delay
        if isinstance(value, int) and not isinstance(value, bool):
            return {"type": "exponential", "delay": value}
        return value

    def to_job_options(self) -> Dict[str, Any]:
        """Translate to the transport's job options, omitting unset keys."""
        opts: Dict[str, Any] = {
            "attempts": self.attempts,
            "backoff": self.backoff.model_dump(),
            "removeOnComplete": self.remove_on_complete,
            "removeOnFail": self.remove_on_fail,
        }
        if self.delay is not None:
            opts["delay"] = self.delay
        if self.priority is not None:
            opts["priority"] = self.priority
        return opts


@dataclass
class RuleSet:
    """Allow/Disallow patterns for one robots.txt agent group."""
    allow: List[str] = field(default_factory=list)
    disallow: List[str] = field(default_factory=list)


@dataclass
class RobotsPolicy:
    """Parsed robots.txt for one origin.

    ``by_agent`` keys are lowercase agent names; a ``"*"`` entry always exists.
    ``fetched_at`` is a reading of the gate's clock.
    """
    by_agent: Dict[str, RuleSet]
    fetched_at: float
    sitemaps: List[str] = field(default_factory=list)

    def rules_for(self, user_agent: str) -> Optional[RuleSet]:
        """Exact case-insensitive group match, else the ``"*"`` group."""
        key = user_agent.lower()
        if key in self.by_agent:
            return self.by_agent[key]
        return self.by_agent.get("*")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class JobOutcome:
    """One immutable record per job attempt, appended to the result sink."""
    job_id: Optional[str]
    requested_site: Optional[str]
    url: Optional[str]
    ok: bool
    resolved_site: Optional[str] = None
    result: Any = None
    error: Optional[str] = None
    attempt: Optional[int] = None
    timestamp: datetime = field(default_factory=_utc_now)

    @property
    def event(self) -> str:
        return "result" if self.ok else "failed"

    def to_record(self) -> Dict[str, Any]:
        """Sink record; optional keys are omitted when unset."""
        record: Dict[str, Any] = {
            "ts": self.timestamp.isoformat(),
            "event": self.event,
            "jobId": self.job_id,
            "requestedSite": self.requested_site,
        }
        if self.resolved_site is not None:
            record["resolvedSite"] = self.resolved_site
        record["url"] = self.url
        record["ok"] = self.ok
        if self.attempt is not None:
            record["attempt"] = self.attempt
        if self.ok:
            record["result"] = self.result
        else:
            record["error"] = self.error
        return record
