"""Small Playwright helpers shared by site handlers."""

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_BLOCKED_RESOURCES = ("image", "media", "font")
NAVIGATION_TIMEOUT_MS = 30_000

_INT_RE = re.compile(r"-?\d+")


def blocked_resources(meta: Optional[Dict[str, Any]]) -> Sequence[str]:
    """Resource types to abort, from ``meta["blockResources"]`` or the default."""
    value = (meta or {}).get("blockResources")
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return value
    return DEFAULT_BLOCKED_RESOURCES


async def prepare_page(page, meta: Optional[Dict[str, Any]] = None) -> None:
    """Abort requests for heavy resource types before navigating."""
    block = set(blocked_resources(meta))
    if not block:
        return

    async def _route(route):
        if route.request.resource_type in block:
            await route.abort()
        else:
            await route.continue_()

    await page.route("**/*", _route)


async def settle(page, timeout_ms: int) -> None:
    """Wait briefly for network idle; pages that never go idle are fine."""
    try:
        await page.wait_for_load_state("networkidle", timeout=timeout_ms)
    except PlaywrightTimeoutError:
        logger.debug(f"Page did not reach networkidle within {timeout_ms}ms: {page.url}")


async def text_if_exists(locator) -> Optional[str]:
    """Trimmed text of the first match, or None without waiting when absent."""
    if await locator.count() == 0:
        return None
    text = await locator.first.text_content()
    return text.strip() if text is not None else None


async def attribute_if_exists(locator, name: str) -> Optional[str]:
    if await locator.count() == 0:
        return None
    return await locator.first.get_attribute(name)


async def first_n_texts(locator, n: int) -> List[str]:
    """Non-empty trimmed texts of up to n matches."""
    count = min(await locator.count(), n)
    out: List[str] = []
    for i in range(count):
        text = await locator.nth(i).text_content()
        if text and text.strip():
            out.append(text.strip())
    return out


def parse_first_int(text: Optional[str]) -> Optional[int]:
    """First integer in a string ("123 points" -> 123), else None."""
    if not text:
        return None
    m = _INT_RE.search(text)
    return int(m.group(0)) if m else None
