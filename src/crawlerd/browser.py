"""
Shared Playwright browser for site handlers.

One browser is launched lazily per process and shared by every job; each
job gets its own isolated context and page, closed when the job is done:

    async with BrowserProvider(config) as browser:
        async with browser.page() as page:
            await page.goto("https://example.com")
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from crawlerd.browser_config import BrowserConfig

logger = logging.getLogger(__name__)

# Device descriptor keys that new_context() accepts
_DEVICE_CONTEXT_KEYS = (
    "user_agent",
    "viewport",
    "screen",
    "device_scale_factor",
    "is_mobile",
    "has_touch",
)


class BrowserProvider:
    """Page-automation provider backed by Playwright's async API."""

    def __init__(self, config: Optional[BrowserConfig] = None):
        """
        Initialize the provider. Nothing is launched until the first page().

        Args:
            config: BrowserConfig instance with launch and context settings
        """
        self._config = config or BrowserConfig()
        self._playwright = None
        self._browser = None
        self._lock = asyncio.Lock()

    @property
    def config(self) -> BrowserConfig:
        return self._config

    @property
    def is_started(self) -> bool:
        return self._browser is not None

    async def __aenter__(self) -> "BrowserProvider":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_browser(self) -> Any:
        async with self._lock:
            if self._browser is not None:
                return self._browser

            try:
                from playwright.async_api import async_playwright
            except ImportError:
                raise ImportError(
                    "playwright package not installed. "
                    "Install with: pip install playwright && playwright install chromium"
                )

            logger.info(
                f"Launching {self._config.browser_type} browser "
                f"(headless={self._config.headless})"
            )
            self._playwright = await async_playwright().start()
            launcher = getattr(self._playwright, self._config.browser_type)
            try:
                self._browser = await launcher.launch(**self._config.launch_options())
            except Exception:
                await self._playwright.stop()
                self._playwright = None
                raise
            return self._browser

    def _context_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {}
        if self._config.device and self._playwright is not None:
            device = self._playwright.devices.get(self._config.device)
            if device:
                options.update({
                    key: value for key, value in device.items()
                    if key in _DEVICE_CONTEXT_KEYS
                })
        options.update({
            "viewport": {
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
            "locale": self._config.locale,
            "timezone_id": self._config.timezone_id,
            "ignore_https_errors": True,
        })
        if self._config.user_agent:
            options["user_agent"] = self._config.user_agent
        return options

    @asynccontextmanager
    async def page(self, **context_overrides: Any) -> AsyncIterator[Any]:
        """
        Open an isolated context and page for one unit of work.

        Args:
            **context_overrides: Extra ``new_context()`` keyword arguments

        Yields:
            Playwright Page with the configured default timeouts
        """
        browser = await self._ensure_browser()
        options = self._context_options()
        options.update(context_overrides)

        context = await browser.new_context(**options)
        try:
            page = await context.new_page()
            page.set_default_navigation_timeout(self._config.navigation_timeout)
            page.set_default_timeout(self._config.default_timeout)
            yield page
        finally:
            # Always close the context to keep jobs isolated
            await context.close()

    async def close(self) -> None:
        """Close the browser and stop Playwright. Safe to call repeatedly."""
        async with self._lock:
            browser, self._browser = self._browser, None
            pw, self._playwright = self._playwright, None

        if browser is not None:
            logger.info("Closing browser")
            try:
                await browser.close()
            except Exception as e:
                logger.warning(f"Error closing browser: {e}")

        if pw is not None:
            try:
                await pw.stop()
            except Exception as e:
                logger.warning(f"Error stopping playwright: {e}")
