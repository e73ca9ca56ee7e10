"""Handler for the example.com demo page."""

from typing import Any, Dict, Optional

from crawlerd.sites.page_utils import NAVIGATION_TIMEOUT_MS, text_if_exists

DEFAULT_URL = "https://example.com/"


async def scrape_example(context, url: str = DEFAULT_URL, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    async with context.browser.page() as page:
        await page.goto(url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)

        return {
            "url": url,
            "title": await page.title(),
            "h1": await text_if_exists(page.locator("h1")),
            "linkCount": await page.locator("a").count(),
        }
