"""Generic handler: page basics for any site without a dedicated handler."""

import logging
from typing import Any, Dict, Optional

from crawlerd.sites.page_utils import (
    NAVIGATION_TIMEOUT_MS,
    attribute_if_exists,
    first_n_texts,
    prepare_page,
    settle,
    text_if_exists,
)

logger = logging.getLogger(__name__)

SETTLE_TIMEOUT_MS = 5_000
MAX_H2 = 5


async def scrape_generic(context, url: str, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Navigate to a URL and extract title, description, canonical and headings.

    Args:
        context: SiteContext with the browser and robots gate
        url: Page to load
        meta: Optional knobs; ``blockResources`` overrides blocked resource types

    Returns:
        Dict with requestedUrl, finalUrl, status, title, metaDescription,
        canonical, h1, h2 (first five) and linkCount

    Raises:
        PolicyViolation: If robots.txt disallows the URL
        playwright.TimeoutError: If navigation exceeds its timeout
    """
    await context.robots.ensure_allowed_or_raise(url)

    async with context.browser.page() as page:
        await prepare_page(page, meta)

        response = await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=NAVIGATION_TIMEOUT_MS,
        )
        await settle(page, SETTLE_TIMEOUT_MS)

        title = await page.title()
        result = {
            "requestedUrl": url,
            "finalUrl": page.url,
            "status": response.status if response else None,
            "title": title or None,
            "metaDescription": await attribute_if_exists(
                page.locator('meta[name="description"]'), "content"
            ),
            "canonical": await attribute_if_exists(
                page.locator('link[rel="canonical"]'), "href"
            ),
            "h1": await text_if_exists(page.locator("h1")),
            "h2": await first_n_texts(page.locator("h2"), MAX_H2),
            "linkCount": await page.locator("a").count(),
        }

    logger.info(f"Scraped {url} (status={result['status']}, title={result['title']!r})")
    return result
