"""Site handler registry.

Maps a site id to an async scrape handler ``handler(url, meta)``. Built once
at process start and shared by every job.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from crawlerd.errors import InvalidId

logger = logging.getLogger(__name__)

ScrapeFn = Callable[[str, Optional[Dict[str, Any]]], Awaitable[Any]]

GENERIC_SITE = "generic"


class HandlerRegistry:
    """Case-sensitive site id -> handler map, last registration wins."""

    def __init__(self):
        self._handlers: Dict[str, ScrapeFn] = {}

    def register(self, site_id: str, handler: ScrapeFn) -> None:
        """Register (or replace) the handler for a site id.

        Raises:
            InvalidId: If site_id is empty or not a string
        """
        if not isinstance(site_id, str) or not site_id:
            raise InvalidId("site id must be a non-empty string")
        if not callable(handler):
            raise TypeError(f"handler for '{site_id}' must be callable")

        if site_id in self._handlers:
            logger.debug(f"Replacing handler for site '{site_id}'")
        self._handlers[site_id] = handler

    def resolve(self, site_id: str) -> Optional[ScrapeFn]:
        return self._handlers.get(site_id)

    def list_ids(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, site_id: object) -> bool:
        return site_id in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
