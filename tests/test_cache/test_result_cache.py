"""Tests for ResultCache and cache_key_for."""

from __future__ import annotations

import asyncio

import pytest

from fetchpipe.cache import ResultCache, cache_key_for
from fetchpipe.exceptions import HttpError
from fetchpipe.models import RequestSpec


# ---------------------------------------------------------------------------
# fetch_or_compute
# ---------------------------------------------------------------------------


class TestFetchOrCompute:
    @pytest.mark.asyncio
    async def test_miss_runs_producer_and_stores(self) -> None:
        cache = ResultCache()
        calls = 0

        async def producer() -> list[str]:
            nonlocal calls
            calls += 1
            return ["a", "b"]

        assert await cache.fetch_or_compute("k", producer) == ["a", "b"]
        assert calls == 1
        assert "k" in cache
        assert cache.get("k") == ["a", "b"]

    @pytest.mark.asyncio
    async def test_sequential_hit_skips_producer(self) -> None:
        cache = ResultCache()
        calls = 0

        async def producer() -> dict[str, int]:
            nonlocal calls
            calls += 1
            return {"n": calls}

        first = await cache.fetch_or_compute("k", producer)
        second = await cache.fetch_or_compute("k", producer)

        assert calls == 1
        assert first == second == {"n": 1}
        assert cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    @pytest.mark.asyncio
    async def test_different_keys_are_independent(self) -> None:
        cache = ResultCache()

        async def make(value: int):
            return value

        assert await cache.fetch_or_compute("a", lambda: make(1)) == 1
        assert await cache.fetch_or_compute("b", lambda: make(2)) == 2
        assert sorted(cache.keys()) == ["a", "b"]
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_failed_producer_stores_nothing(self) -> None:
        cache = ResultCache()

        async def failing() -> str:
            raise HttpError(500, "boom")

        with pytest.raises(HttpError):
            await cache.fetch_or_compute("k", failing)

        assert "k" not in cache

        async def succeeding() -> str:
            return "ok"

        assert await cache.fetch_or_compute("k", succeeding) == "ok"

    @pytest.mark.asyncio
    async def test_none_result_is_cached(self) -> None:
        cache = ResultCache()
        calls = 0

        async def producer() -> None:
            nonlocal calls
            calls += 1
            return None

        await cache.fetch_or_compute("k", producer)
        await cache.fetch_or_compute("k", producer)

        assert calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_misses_both_run_and_last_write_wins(self) -> None:
        cache = ResultCache()
        release_first = asyncio.Event()
        started: list[str] = []

        async def slow() -> str:
            started.append("slow")
            await release_first.wait()
            return "slow"

        async def fast() -> str:
            started.append("fast")
            return "fast"

        slow_task = asyncio.ensure_future(cache.fetch_or_compute("k", slow))
        await asyncio.sleep(0)
        fast_result = await cache.fetch_or_compute("k", fast)

        release_first.set()
        slow_result = await slow_task

        assert started == ["slow", "fast"]
        assert fast_result == "fast"
        assert slow_result == "slow"
        assert cache.get("k") == "slow"

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        cache = ResultCache()

        async def producer() -> int:
            return 1

        await cache.fetch_or_compute("k", producer)
        cache.clear()

        assert len(cache) == 0
        assert cache.get("k") is None


# ---------------------------------------------------------------------------
# cache_key_for
# ---------------------------------------------------------------------------


class TestCacheKeyFor:
    def test_method_and_url(self) -> None:
        spec = RequestSpec(method="get", url="https://api.example.com/users")
        assert cache_key_for(spec) == "GET https://api.example.com/users"

    def test_headers_do_not_affect_key(self) -> None:
        a = RequestSpec(url="https://api.example.com/users", headers={"X-A": "1"})
        b = RequestSpec(url="https://api.example.com/users")
        assert cache_key_for(a) == cache_key_for(b)

    def test_body_changes_key(self) -> None:
        a = RequestSpec(method="POST", url="https://api.example.com/q", body='{"q": 1}')
        b = RequestSpec(method="POST", url="https://api.example.com/q", body='{"q": 2}')
        assert cache_key_for(a) != cache_key_for(b)
        assert cache_key_for(a).startswith("POST https://api.example.com/q #")

    def test_str_and_bytes_body_agree(self) -> None:
        a = RequestSpec(method="POST", url="https://api.example.com/q", body="x")
        b = RequestSpec(method="POST", url="https://api.example.com/q", body=b"x")
        assert cache_key_for(a) == cache_key_for(b)
