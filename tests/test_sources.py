"""
Tests for the source registry and source descriptors.
"""

import pytest

from event_radar.shared.schemas.dto import FetchStrategy, SourceDescriptor
from event_radar.shared.utils.errors import SourceNotFoundError
from event_radar.shared.utils.types import ErrorType
from event_radar.sources.registry import (
    SOURCE_REGISTRY,
    get_active_sources,
    get_source,
    get_sources_by_strategy,
    list_source_names,
)


class TestRegistry:
    """Lookups over the static source catalog."""

    def test_get_source_by_name(self):
        source = get_source("InnCubator")
        assert source.strategy == FetchStrategy.JS_RENDER
        assert source.max_chars == 50000

    def test_unknown_source_raises(self):
        with pytest.raises(SourceNotFoundError) as exc_info:
            get_source("Nowhere")
        assert exc_info.value.error_type == ErrorType.NOT_FOUND
        assert exc_info.value.status_code == 404

    def test_active_sources_exclude_inactive(self):
        active = get_active_sources()
        assert active
        assert all(source.active for source in active)
        assert "Meetup Innsbruck" not in {source.name for source in active}

    def test_login_walled_sources_are_inactive(self):
        for source in SOURCE_REGISTRY.values():
            if source.requires_auth:
                assert not source.active, source.name

    def test_every_source_has_instructions(self):
        for source in SOURCE_REGISTRY.values():
            assert source.instructions.strip(), source.name
            assert source.url.startswith("https://"), source.name

    def test_structured_sources_have_api_url(self):
        for source in get_sources_by_strategy(FetchStrategy.STRUCTURED_API):
            assert source.api_url.startswith("https://"), source.name

    def test_names_are_unique(self):
        names = list_source_names()
        assert len(names) == len(set(names)) == len(SOURCE_REGISTRY)


class TestSourceDescriptor:
    """URL and provider resolution."""

    def test_fetch_url_prefers_search_url(self):
        source = SourceDescriptor(
            name="x", url="https://a.example/events", search_url="https://a.example/search"
        )
        assert source.fetch_url == "https://a.example/search"

    def test_structured_api_fetches_api_url(self):
        source = SourceDescriptor(
            name="x",
            url="https://a.example/events",
            strategy=FetchStrategy.STRUCTURED_API,
            api_url="https://api.example/events.json",
        )
        assert source.fetch_url == "https://api.example/events.json"
        assert source.provider == "api.example"

    def test_rendered_sources_share_one_provider(self):
        first = SourceDescriptor(
            name="a", url="https://a.example", strategy=FetchStrategy.JS_RENDER
        )
        second = SourceDescriptor(
            name="b", url="https://b.example", strategy=FetchStrategy.JS_RENDER
        )
        assert first.provider == second.provider == "render"

    def test_static_provider_is_host(self):
        source = SourceDescriptor(name="x", url="https://WWW.Example.com/events")
        assert source.provider == "www.example.com"
