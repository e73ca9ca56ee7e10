"""
Hacker News listing handler.

Scrapes ranked stories from news.ycombinator.com listing pages. Options in
``meta``:
- ``limit``: items per page, 1..100 (default 30)
- ``pages``: listing pages to walk, 1..10 (default 1), fetched as ``?p=N``

Every page URL is checked against robots.txt before navigation.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from crawlerd.sites.page_utils import (
    NAVIGATION_TIMEOUT_MS,
    attribute_if_exists,
    parse_first_int,
    settle,
    text_if_exists,
)

logger = logging.getLogger(__name__)

SETTLE_TIMEOUT_MS = 3_000
DEFAULT_LIMIT = 30
MAX_LIMIT = 100
DEFAULT_PAGES = 1
MAX_PAGES = 10

# The subtext row follows each story row
_SUBTEXT_XPATH = (
    'xpath=following-sibling::tr[1]//td[contains(@class,"subtext") or @class="subtext"]'
)


@dataclass
class HnItem:
    """One story row."""
    id: Optional[int]
    page: int
    rank: Optional[int]
    title: Optional[str]
    url: Optional[str]
    site: Optional[str]
    points: Optional[int]
    author: Optional[str]
    age: Optional[str]  # e.g. "5 hours ago"
    comments: Optional[int]  # None when the link says "discuss"


def _clamped_int(value: Any, low: int, high: int, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(low, min(high, int(value)))


def page_url_for(base: str, page: int) -> str:
    """Listing URL for a 1-based page number."""
    if page <= 1:
        return base
    parsed = urlparse(base)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k != "p"]
    query.append(("p", str(page)))
    return urlunparse(parsed._replace(query=urlencode(query)))


async def _extract_row(row, page_number: int) -> HnItem:
    id_attr = await row.get_attribute("id")
    item_id = int(id_attr) if id_attr and id_attr.isdigit() else None

    title_link = row.locator("span.titleline a")
    sub = row.locator(_SUBTEXT_XPATH)

    comments = None
    links_in_sub = sub.locator("a")
    link_count = await links_in_sub.count()
    if link_count > 0:
        last_text = await links_in_sub.nth(link_count - 1).text_content()
        comments = parse_first_int(last_text)

    return HnItem(
        id=item_id,
        page=page_number,
        rank=parse_first_int(await text_if_exists(row.locator("span.rank"))),
        title=await text_if_exists(title_link),
        url=await attribute_if_exists(title_link, "href"),
        site=await text_if_exists(row.locator("span.sitestr")),
        points=parse_first_int(await text_if_exists(sub.locator("span.score"))),
        author=await text_if_exists(sub.locator("a.hnuser")),
        age=await text_if_exists(sub.locator("span.age")),
        comments=comments,
    )


async def scrape_hn(context, url: str, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Scrape one or more Hacker News listing pages.

    Returns:
        Dict with url, pages, count and items (list of HnItem dicts)

    Raises:
        PolicyViolation: If robots.txt disallows any listing page
    """
    meta = meta or {}
    limit = _clamped_int(meta.get("limit"), 1, MAX_LIMIT, DEFAULT_LIMIT)
    pages = _clamped_int(meta.get("pages"), 1, MAX_PAGES, DEFAULT_PAGES)

    items: List[HnItem] = []

    async with context.browser.page() as page:
        for page_number in range(1, pages + 1):
            page_url = page_url_for(url, page_number)
            await context.robots.ensure_allowed_or_raise(page_url)

            await page.goto(page_url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)
            await settle(page, SETTLE_TIMEOUT_MS)

            rows = page.locator("tr.athing")
            n = min(await rows.count(), limit)
            for i in range(n):
                items.append(await _extract_row(rows.nth(i), page_number))

            logger.debug(f"HN page {page_number}: {n} item(s) from {page_url}")

    return {
        "url": url,
        "pages": pages,
        "count": len(items),
        "items": [asdict(item) for item in items],
    }
