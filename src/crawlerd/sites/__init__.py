"""
Site handlers.

Built-in handlers are bound to a SiteContext (shared browser + robots gate)
and registered explicitly; extra handlers come from configured plugins.
"""

from dataclasses import dataclass
from functools import partial

from crawlerd.browser import BrowserProvider
from crawlerd.robots import RobotsGate
from crawlerd.sites.registry import GENERIC_SITE, HandlerRegistry, ScrapeFn


@dataclass
class SiteContext:
    """Process-wide collaborators handed to every site handler."""
    browser: BrowserProvider
    robots: RobotsGate


def register_builtin_sites(registry: HandlerRegistry, context: SiteContext) -> None:
    from crawlerd.sites.example import scrape_example
    from crawlerd.sites.generic import scrape_generic
    from crawlerd.sites.hn import scrape_hn

    registry.register("example", partial(scrape_example, context))
    registry.register(GENERIC_SITE, partial(scrape_generic, context))
    registry.register("hn", partial(scrape_hn, context))


def build_registry(context: SiteContext, plugins=(), plugins_file=None) -> HandlerRegistry:
    """Registry with the built-in handlers followed by configured plugins."""
    from crawlerd.sites.plugins import load_plugins

    registry = HandlerRegistry()
    register_builtin_sites(registry, context)
    load_plugins(registry, context, plugins, plugins_file)
    return registry


__all__ = [
    "GENERIC_SITE",
    "HandlerRegistry",
    "ScrapeFn",
    "SiteContext",
    "build_registry",
    "register_builtin_sites",
]
