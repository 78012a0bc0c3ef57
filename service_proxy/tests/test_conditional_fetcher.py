"""
Unit tests for the conditional fetcher.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock
from fastapi import HTTPException

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_proxy.app.adapters.upstream import (
    NotModified,
    RateLimitKind,
    RateLimitSignal,
    UpstreamHttpError,
    UpstreamRequest,
    UpstreamResponse,
)
from service_proxy.app.caching.conditional_fetcher import ConditionalFetcher
from service_proxy.app.caching.lru_store import CacheStore
from shared.errors import CacheConsistencyError
from shared.metrics import MetricsCollector


KEY = "getContent$gobstones/demo$."


class TestConditionalFetcher:
    """Test cases for ConditionalFetcher."""

    @pytest.fixture
    def request_template(self):
        return UpstreamRequest(
            "GET",
            "/repos/{owner}/{repo}/contents/{path}",
            params={"owner": "gobstones", "repo": "demo", "path": "."},
        )

    @pytest.fixture
    def store(self):
        return CacheStore(5000)

    @pytest.fixture
    def upstream(self):
        upstream = MagicMock()
        upstream.call = AsyncMock()
        return upstream

    @pytest.fixture
    def fetcher(self, store, upstream):
        return ConditionalFetcher(store, upstream)

    @staticmethod
    def sent_request(upstream, index=-1):
        return upstream.call.await_args_list[index].args[0]

    @pytest.mark.asyncio
    async def test_first_fetch_is_unconditional(self, fetcher, upstream, request_template):
        upstream.call.return_value = UpstreamResponse(200, [{"name": "file.txt"}], {"etag": 'W/"1234"'})

        result = await fetcher.fetch(KEY, request_template)

        assert result == [{"name": "file.txt"}]
        assert "If-None-Match" not in self.sent_request(upstream).headers

    @pytest.mark.asyncio
    async def test_second_fetch_sends_stored_validator(self, fetcher, upstream, request_template):
        upstream.call.return_value = UpstreamResponse(200, [{"name": "file.txt"}], {"etag": 'W/"1234"'})

        await fetcher.fetch(KEY, request_template)
        await fetcher.fetch(KEY, request_template)

        assert self.sent_request(upstream).headers == {"If-None-Match": '"1234"'}
        # the caller's request is left untouched
        assert request_template.headers == {}

    @pytest.mark.asyncio
    async def test_not_modified_returns_previous_payload(self, fetcher, upstream, request_template):
        listing = [{"name": "file.txt"}]
        upstream.call.side_effect = [
            UpstreamResponse(200, listing, {"etag": 'W/"1234"'}),
            NotModified(),
        ]

        await fetcher.fetch(KEY, request_template)
        result = await fetcher.fetch(KEY, request_template)

        assert result is listing

    @pytest.mark.asyncio
    async def test_changed_content_replaces_entry(self, fetcher, store, upstream, request_template):
        new_listing = [{"name": "file.txt"}, {"name": "anotherfile.txt"}]
        upstream.call.side_effect = [
            UpstreamResponse(200, [{"name": "file.txt"}], {"etag": 'W/"1234"'}),
            UpstreamResponse(200, new_listing, {"etag": 'W/"5678"'}),
            NotModified(),
        ]

        await fetcher.fetch(KEY, request_template)
        changed = await fetcher.fetch(KEY, request_template)
        revalidated = await fetcher.fetch(KEY, request_template)

        assert changed == new_listing
        assert revalidated == new_listing
        assert self.sent_request(upstream).headers == {"If-None-Match": '"5678"'}
        assert store.get(KEY).validator == '"5678"'

    @pytest.mark.asyncio
    async def test_response_without_validator_is_not_cached(self, fetcher, store, upstream, request_template):
        upstream.call.return_value = UpstreamResponse(200, [{"name": "file.txt"}], {})

        result = await fetcher.fetch(KEY, request_template)

        assert result == [{"name": "file.txt"}]
        assert KEY not in store

    @pytest.mark.asyncio
    async def test_response_without_validator_keeps_previous_entry(self, fetcher, store, upstream, request_template):
        upstream.call.side_effect = [
            UpstreamResponse(200, ["old"], {"etag": '"1"'}),
            UpstreamResponse(200, ["new"], {}),
        ]

        await fetcher.fetch(KEY, request_template)
        result = await fetcher.fetch(KEY, request_template)

        assert result == ["new"]
        assert store.get(KEY).payload == ["old"]

    @pytest.mark.asyncio
    async def test_not_modified_without_entry_is_a_consistency_error(self, fetcher, upstream, request_template):
        upstream.call.side_effect = NotModified()

        with pytest.raises(CacheConsistencyError) as exc_info:
            await fetcher.fetch(KEY, request_template)

        assert exc_info.value.details == {"key": KEY}

    @pytest.mark.asyncio
    async def test_not_modified_after_eviction_serves_snapshot(self, upstream, request_template):
        store = CacheStore(100, sizer=lambda payload: 60)
        fetcher = ConditionalFetcher(store, upstream)
        listing = ["listing"]
        store.put(KEY, '"1234"', listing)

        async def evict_then_not_modified(request):
            store.put("other", '"9"', ["other"])
            raise NotModified()

        upstream.call.side_effect = evict_then_not_modified

        assert await fetcher.fetch(KEY, request_template) is listing
        assert KEY not in store

    @pytest.mark.asyncio
    async def test_http_error_is_translated(self, fetcher, upstream, request_template):
        upstream.call.side_effect = UpstreamHttpError(404, "Not Found")

        with pytest.raises(HTTPException) as exc_info:
            await fetcher.fetch(KEY, request_template)

        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Not Found"

    @pytest.mark.asyncio
    async def test_terminal_rate_limit_is_translated(self, fetcher, upstream, request_template):
        upstream.call.side_effect = RateLimitSignal(RateLimitKind.SECONDARY, 60, 403, "secondary rate limit")

        with pytest.raises(HTTPException) as exc_info:
            await fetcher.fetch(KEY, request_template)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_error_is_forwarded_verbatim(self, fetcher, store, upstream, request_template):
        error = RuntimeError("boom boom")
        upstream.call.side_effect = error

        with pytest.raises(RuntimeError) as exc_info:
            await fetcher.fetch(KEY, request_template)

        assert exc_info.value is error
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_custom_translator(self, store, upstream, request_template):
        fetcher = ConditionalFetcher(store, upstream, translator=lambda exc: ValueError(str(exc)))
        upstream.call.side_effect = UpstreamHttpError(500, "Server Error")

        with pytest.raises(ValueError, match="Server Error"):
            await fetcher.fetch(KEY, request_template)

    @pytest.mark.asyncio
    async def test_revalidations_are_counted_apart_from_lookups(self, upstream, request_template):
        metrics = MetricsCollector("proxy")
        store = CacheStore(5000, metrics=metrics)
        fetcher = ConditionalFetcher(store, upstream, metrics=metrics)
        upstream.call.side_effect = [
            UpstreamResponse(200, [{"name": "file.txt"}], {"etag": '"1"'}),
            NotModified(),
            UpstreamResponse(200, [{"name": "test.txt"}], {"etag": '"2"'}),
        ]

        for _ in range(3):
            await fetcher.fetch(KEY, request_template)

        assert metrics.sample("cache_lookups_total", result="miss") == 1.0
        assert metrics.sample("cache_lookups_total", result="hit") == 2.0
        assert metrics.sample("cache_lookups_total", result="revalidated") is None
        assert metrics.sample("cache_revalidations_total", outcome="not_modified") == 1.0
        assert metrics.sample("cache_revalidations_total", outcome="changed") == 1.0
