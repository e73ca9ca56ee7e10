"""Tests for the site handler registry."""

import pytest

from crawlerd.errors import InvalidId
from crawlerd.sites import build_registry
from crawlerd.sites.registry import HandlerRegistry


async def first_handler(url, meta=None):
    return "first"


async def second_handler(url, meta=None):
    return "second"


class TestHandlerRegistry:
    """Test cases for HandlerRegistry."""

    def test_resolve_registered(self):
        registry = HandlerRegistry()
        registry.register("x", first_handler)

        assert registry.resolve("x") is first_handler
        assert "x" in registry

    def test_resolve_missing_returns_none(self):
        assert HandlerRegistry().resolve("missing") is None

    def test_last_registration_wins(self):
        """Test re-registering an id replaces the handler."""
        registry = HandlerRegistry()
        registry.register("x", first_handler)
        registry.register("x", second_handler)

        assert registry.resolve("x") is second_handler
        assert len(registry) == 1

    def test_ids_are_case_sensitive(self):
        registry = HandlerRegistry()
        registry.register("Site", first_handler)

        assert registry.resolve("site") is None

    def test_list_ids_sorted(self):
        registry = HandlerRegistry()
        for site_id in ["zeta", "alpha", "Mid", "beta"]:
            registry.register(site_id, first_handler)

        assert registry.list_ids() == ["Mid", "alpha", "beta", "zeta"]

    @pytest.mark.parametrize("bad_id", ["", None, 42])
    def test_invalid_id_rejected(self, bad_id):
        with pytest.raises(InvalidId):
            HandlerRegistry().register(bad_id, first_handler)

    def test_non_callable_handler_rejected(self):
        with pytest.raises(TypeError):
            HandlerRegistry().register("x", "not a function")


class TestBuiltinSites:
    """Test cases for the built-in registrations."""

    def test_builtins_registered(self, site_context):
        registry = build_registry(site_context)

        assert registry.list_ids() == ["example", "generic", "hn"]
