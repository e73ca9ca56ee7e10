"""Tests for the shared Playwright browser provider."""

import pytest
import playwright.async_api

from crawlerd.browser import BrowserProvider
from crawlerd.browser_config import BrowserConfig


class FakePwPage:
    def __init__(self):
        self.navigation_timeout = None
        self.default_timeout = None

    def set_default_navigation_timeout(self, timeout):
        self.navigation_timeout = timeout

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout


class FakePwContext:
    def __init__(self, options):
        self.options = options
        self.closed = False

    async def new_page(self):
        return FakePwPage()

    async def close(self):
        self.closed = True


class FakePwBrowser:
    def __init__(self):
        self.contexts = []
        self.close_calls = 0

    async def new_context(self, **options):
        context = FakePwContext(options)
        self.contexts.append(context)
        return context

    async def close(self):
        self.close_calls += 1


class FakeLauncher:
    def __init__(self, fail=False):
        self.fail = fail
        self.launches = []
        self.browser = FakePwBrowser()

    async def launch(self, **options):
        self.launches.append(options)
        if self.fail:
            raise RuntimeError("Executable doesn't exist")
        return self.browser


class FakePlaywright:
    def __init__(self, launcher):
        self.chromium = launcher
        self.devices = {
            "Desktop Chrome": {
                "user_agent": "DeviceUA/1.0",
                "viewport": {"width": 1280, "height": 720},
                "device_scale_factor": 1,
                "is_mobile": False,
                "has_touch": False,
                "default_browser_type": "chromium",
            }
        }
        self.stop_calls = 0

    async def stop(self):
        self.stop_calls += 1


class FakeContextManager:
    def __init__(self, playwright):
        self.playwright = playwright
        self.starts = 0

    async def start(self):
        self.starts += 1
        return self.playwright


@pytest.fixture
def fake_playwright(monkeypatch):
    """Replaces async_playwright() and returns the fake driver."""
    driver = FakePlaywright(FakeLauncher())
    manager = FakeContextManager(driver)
    monkeypatch.setattr(playwright.async_api, "async_playwright", lambda: manager)
    driver.manager = manager
    return driver


class TestBrowserProvider:
    """Test cases for BrowserProvider lifecycle and page isolation."""

    @pytest.mark.asyncio
    async def test_browser_launched_lazily_and_shared(self, fake_playwright):
        provider = BrowserProvider(BrowserConfig())

        assert provider.is_started is False
        assert fake_playwright.manager.starts == 0

        async with provider.page():
            pass
        async with provider.page():
            pass

        assert provider.is_started is True
        assert fake_playwright.manager.starts == 1
        assert fake_playwright.chromium.launches == [{"headless": True}]
        assert len(fake_playwright.chromium.browser.contexts) == 2
        await provider.close()

    @pytest.mark.asyncio
    async def test_context_options_and_timeouts(self, fake_playwright):
        provider = BrowserProvider(BrowserConfig(user_agent="CrawlerdBot/1.0", locale="de-DE"))

        async with provider.page() as page:
            assert page.navigation_timeout == 30000
            assert page.default_timeout == 10000

        options = fake_playwright.chromium.browser.contexts[0].options
        assert "default_browser_type" not in options
        assert options["user_agent"] == "CrawlerdBot/1.0"
        assert options["viewport"] == {"width": 1366, "height": 900}
        assert options["locale"] == "de-DE"
        assert options["device_scale_factor"] == 1
        await provider.close()

    @pytest.mark.asyncio
    async def test_context_closed_when_body_raises(self, fake_playwright):
        provider = BrowserProvider()

        with pytest.raises(ValueError):
            async with provider.page():
                raise ValueError("extraction failed")

        assert fake_playwright.chromium.browser.contexts[0].closed is True
        await provider.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, fake_playwright):
        async with BrowserProvider() as provider:
            async with provider.page():
                pass

        await provider.close()

        assert provider.is_started is False
        assert fake_playwright.chromium.browser.close_calls == 1
        assert fake_playwright.stop_calls == 1

    @pytest.mark.asyncio
    async def test_close_without_launch(self, fake_playwright):
        provider = BrowserProvider()

        await provider.close()

        assert fake_playwright.manager.starts == 0

    @pytest.mark.asyncio
    async def test_launch_failure_stops_playwright(self, monkeypatch):
        driver = FakePlaywright(FakeLauncher(fail=True))
        monkeypatch.setattr(
            playwright.async_api, "async_playwright", lambda: FakeContextManager(driver)
        )
        provider = BrowserProvider()

        with pytest.raises(RuntimeError, match="Executable"):
            async with provider.page():
                pass

        assert driver.stop_calls == 1
        assert provider.is_started is False
