"""Shared fakes for browser-driven tests.

FakeBrowser mimics the part of BrowserProvider/Playwright the site handlers
use: page(), goto(), title(), url and locator() chains.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import pytest

from crawlerd.robots import RobotsGate
from crawlerd.sites import SiteContext


@dataclass
class FakeElement:
    text: Optional[str] = None
    attrs: Dict[str, str] = field(default_factory=dict)
    children: Dict[str, List["FakeElement"]] = field(default_factory=dict)


@dataclass
class FakePageSpec:
    title: str = ""
    status: int = 200
    final_url: Optional[str] = None
    elements: Dict[str, List[FakeElement]] = field(default_factory=dict)


class FakeLocator:
    def __init__(self, elements: List[FakeElement]):
        self._elements = elements

    @property
    def first(self) -> "FakeLocator":
        return FakeLocator(self._elements[:1])

    def nth(self, index: int) -> "FakeLocator":
        return FakeLocator(self._elements[index:index + 1])

    def locator(self, selector: str) -> "FakeLocator":
        found: List[FakeElement] = []
        for element in self._elements:
            found.extend(element.children.get(selector, []))
        return FakeLocator(found)

    async def count(self) -> int:
        return len(self._elements)

    async def text_content(self) -> Optional[str]:
        if not self._elements:
            raise AssertionError("text_content() on an empty locator would time out")
        return self._elements[0].text

    async def get_attribute(self, name: str) -> Optional[str]:
        if not self._elements:
            raise AssertionError("get_attribute() on an empty locator would time out")
        return self._elements[0].attrs.get(name)


class FakeResponse:
    def __init__(self, status: int):
        self.status = status


class FakePage:
    def __init__(self, pages: Dict[str, FakePageSpec]):
        self._pages = pages
        self._current: Optional[FakePageSpec] = None
        self._url = "about:blank"
        self.visited: List[str] = []
        self.routes: List[tuple] = []

    @property
    def url(self) -> str:
        return self._url

    def set_default_navigation_timeout(self, timeout: int) -> None:
        pass

    def set_default_timeout(self, timeout: int) -> None:
        pass

    async def route(self, pattern, handler) -> None:
        self.routes.append((pattern, handler))

    async def goto(self, url: str, **kwargs) -> FakeResponse:
        self.visited.append(url)
        if url not in self._pages:
            raise RuntimeError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        self._current = self._pages[url]
        self._url = self._current.final_url or url
        return FakeResponse(self._current.status)

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[int] = None) -> None:
        pass

    async def title(self) -> str:
        return self._current.title if self._current else ""

    def locator(self, selector: str) -> FakeLocator:
        elements = self._current.elements.get(selector, []) if self._current else []
        return FakeLocator(elements)


class FakeBrowser:
    """Stands in for BrowserProvider."""

    def __init__(self, pages: Optional[Dict[str, FakePageSpec]] = None):
        self.pages = pages if pages is not None else {}
        self.opened: List[FakePage] = []
        self.closed = False

    @asynccontextmanager
    async def page(self, **context_overrides):
        page = FakePage(self.pages)
        self.opened.append(page)
        yield page

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def example_page() -> FakePageSpec:
    return FakePageSpec(
        title="Example Domain",
        elements={
            "h1": [FakeElement(text="  Example Domain  ")],
            "h2": [FakeElement(text="First"), FakeElement(text="   "), FakeElement(text="Second")],
            "a": [FakeElement(text="More information...", attrs={"href": "https://www.iana.org/"})],
            'meta[name="description"]': [FakeElement(attrs={"content": "An example page"})],
            'link[rel="canonical"]': [FakeElement(attrs={"href": "https://example.com/"})],
        },
    )


@pytest.fixture
def fake_browser(example_page) -> FakeBrowser:
    return FakeBrowser({"https://example.com/": example_page})


@pytest.fixture
def site_context(fake_browser) -> SiteContext:
    """Context with robots checks disabled, so nothing touches the network."""
    return SiteContext(browser=fake_browser, robots=RobotsGate(enabled=False))
