"""Append-only JSONL sink for job outcome records."""

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Union

from crawlerd.errors import SinkError

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PATH = "data/results.jsonl"


class DateTimeEncoder(json.JSONEncoder):
    """JSON encoder that handles datetime objects."""

    def default(self, obj):
        if isinstance(obj, datetime):
            return obj.isoformat()
        return super().default(obj)


class ResultSink:
    """
    One JSON object per line, appended and never rewritten.

    Records are not deduplicated; under at-least-once delivery the same job
    may appear more than once.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_RESULTS_PATH):
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _write_line(self, line: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'a', encoding='utf-8') as f:
            f.write(line)

    async def append(self, record: Any) -> None:
        """Append one record.

        Raises:
            SinkError: If the record cannot be serialized or written
        """
        try:
            line = json.dumps(record, cls=DateTimeEncoder, ensure_ascii=False) + "\n"
        except (TypeError, ValueError) as e:
            raise SinkError(f"Record is not JSON serializable: {e}") from e

        async with self._lock:
            try:
                await asyncio.to_thread(self._write_line, line)
            except OSError as e:
                raise SinkError(f"Failed to append to {self.path}: {e}") from e

    def tail(self, n: int = 5) -> List[Any]:
        """Last n records, parsed; lines that are not JSON come back as strings.

        Raises:
            FileNotFoundError: If nothing has been written yet
        """
        with open(self.path, 'r', encoding='utf-8') as f:
            lines = [line for line in f.read().splitlines() if line.strip()]

        out: List[Any] = []
        for line in lines[-n:] if n > 0 else []:
            try:
                out.append(json.loads(line))
            except json.JSONDecodeError:
                out.append(line)
        return out
