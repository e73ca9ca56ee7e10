"""Logging configuration for the crawl worker and CLI.

Two output formats are supported:
- ``text``: human-readable lines, the default for interactive use
- ``json``: one JSON object per line for log shippers. Worker events that
  are already JSON (``worker-ready``, ``fallback``, outcome records) are
  merged into the object instead of being nested as a string.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

TEXT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_FORMATS = ("text", "json")

# Loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio", "bullmq")


class JsonEventFormatter(logging.Formatter):
    """Formats each record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        entry = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }

        event = None
        if message.startswith("{"):
            try:
                event = json.loads(message)
            except ValueError:
                event = None

        if isinstance(event, dict):
            for key, value in event.items():
                entry.setdefault(key, value)
        else:
            entry["message"] = message

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    format_string: Optional[str] = None,
    log_format: str = "text",
) -> None:
    """Configure logging for crawlerd.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path, written in the same format
        format_string: Custom format string for ``text`` output
        log_format: ``text`` or ``json``

    Raises:
        ValueError: If log_format is not a known format
    """
    if log_format not in LOG_FORMATS:
        raise ValueError(f"Unknown log format {log_format!r}; expected one of {', '.join(LOG_FORMATS)}")

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter: logging.Formatter = JsonEventFormatter()
    else:
        formatter = logging.Formatter(format_string or TEXT_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
