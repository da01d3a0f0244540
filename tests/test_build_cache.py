"""Tests for the cache-or-scrape orchestrator."""

from __future__ import annotations

import json
import os
import threading
import time
from pathlib import Path
from typing import Any

import httpx
import pytest

from buildgen.core.build_cache import BuildCache
from buildgen.core.cache import FileCache
from buildgen.models import Build, builds_to_json
from buildgen.scrapers.build_parser import BuildParser
from buildgen.scrapers.fetcher import Fetcher
from buildgen.scrapers.pipeline import ScrapePipeline

from conftest import SOURCE_URL, make_client


class SpyCache(FileCache):
    """FileCache that counts writes."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.writes: list[str] = []

    def write(self, key: str, value: Any) -> bool:
        self.writes.append(key)
        return super().write(key, value)


class Upstream:
    """Mock build-catalog server that counts requests."""

    def __init__(self, html: str, fail: bool = False) -> None:
        self.html = html
        self.fail = fail
        self.requests = 0
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests += 1
        if self.fail:
            raise httpx.ConnectTimeout("timed out", request=request)
        return httpx.Response(200, text=self.html)


def _orchestrator(cache: FileCache, upstream: Upstream) -> BuildCache:
    fetcher = Fetcher(make_client(upstream), backoff_s=0)
    return BuildCache(cache, ScrapePipeline(fetcher, BuildParser()), SOURCE_URL)


@pytest.fixture
def spy_cache(cache_dir: Path) -> SpyCache:
    return SpyCache(cache_dir, 168)


class TestGetAllBuilds:
    def test_miss_then_hit(self, spy_cache: SpyCache, sample_html: str) -> None:
        upstream = Upstream(sample_html)
        orchestrator = _orchestrator(spy_cache, upstream)

        first = orchestrator.get_all_builds()
        assert upstream.requests == 1
        assert spy_cache.writes == ["all_builds"]
        assert [b.name for b in first] == ["Moonlight Knight — Level 150", "Bleed Samurai"]

        second = orchestrator.get_all_builds()
        assert upstream.requests == 1
        assert spy_cache.writes == ["all_builds"]
        assert second == first

    def test_expired_cache_triggers_rescrape(
        self, spy_cache: SpyCache, cache_dir: Path, sample_html: str
    ) -> None:
        upstream = Upstream(sample_html)
        orchestrator = _orchestrator(spy_cache, upstream)
        orchestrator.get_all_builds()

        old = time.time() - 200 * 3600
        os.utime(cache_dir / "all_builds.json", (old, old))
        orchestrator.get_all_builds()

        assert upstream.requests == 2

    def test_corrupt_cache_triggers_rescrape(
        self, cache: FileCache, cache_dir: Path, sample_html: str
    ) -> None:
        (cache_dir / "all_builds.json").write_text(json.dumps([{"bogus": True}]))
        upstream = Upstream(sample_html)

        builds = _orchestrator(cache, upstream).get_all_builds()

        assert upstream.requests == 1
        assert len(builds) == 2

    def test_serves_cached_list_without_scraping(
        self, cache: FileCache, sample_builds: list[Build]
    ) -> None:
        upstream = Upstream("<html></html>")
        orchestrator = _orchestrator(cache, upstream)
        orchestrator.write_builds(sample_builds)

        assert orchestrator.get_all_builds() == sample_builds
        assert upstream.requests == 0

    def test_concurrent_cold_callers_scrape_once(self, cache: FileCache, sample_html: str) -> None:
        upstream = Upstream(sample_html)
        orchestrator = _orchestrator(cache, upstream)
        results: list[list[Build]] = []

        def call() -> None:
            results.append(orchestrator.get_all_builds())

        threads = [threading.Thread(target=call) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert upstream.requests == 1
        assert len(results) == 8
        assert all(r == results[0] for r in results)


class TestRefreshBuilds:
    def test_refresh_always_scrapes(self, cache: FileCache, sample_html: str) -> None:
        upstream = Upstream(sample_html)
        orchestrator = _orchestrator(cache, upstream)
        orchestrator.get_all_builds()
        orchestrator.refresh_builds()
        assert upstream.requests == 2

    def test_total_failure_returns_empty_and_overwrites(
        self, cache: FileCache, sample_builds: list[Build]
    ) -> None:
        upstream = Upstream("", fail=True)
        orchestrator = _orchestrator(cache, upstream)
        orchestrator.write_builds(sample_builds)

        assert orchestrator.refresh_builds() == []
        assert upstream.requests == 3
        assert orchestrator.get_raw_cache() == "[]"
        # the empty list is a valid, fresh snapshot — no further scraping
        assert orchestrator.get_all_builds() == []
        assert upstream.requests == 3

    def test_parse_diagnostics_kept(self, cache: FileCache, sample_html: str) -> None:
        orchestrator = _orchestrator(cache, Upstream(sample_html))
        orchestrator.refresh_builds()
        assert [d.heading for d in orchestrator.last_diagnostics] == [
            "Orphaned Heading Level 20"
        ]

    def test_failed_refresh_clears_diagnostics(self, cache: FileCache, sample_html: str) -> None:
        upstream = Upstream(sample_html)
        orchestrator = _orchestrator(cache, upstream)
        orchestrator.refresh_builds()
        assert orchestrator.last_diagnostics

        upstream.fail = True
        assert orchestrator.refresh_builds() == []
        assert orchestrator.last_diagnostics == []

    def test_closed_client_returns_empty(
        self, cache: FileCache, sample_builds: list[Build], sample_html: str
    ) -> None:
        client = make_client(Upstream(sample_html))
        client.close()
        pipeline = ScrapePipeline(Fetcher(client, backoff_s=0), BuildParser())
        orchestrator = BuildCache(cache, pipeline, SOURCE_URL)
        orchestrator.write_builds(sample_builds)

        assert orchestrator.refresh_builds() == []
        assert orchestrator.get_raw_cache() == "[]"
        assert orchestrator.last_diagnostics == []


class TestWriteAndRaw:
    def test_raw_cache_empty_when_absent(self, cache: FileCache) -> None:
        assert _orchestrator(cache, Upstream("")).get_raw_cache() == ""

    def test_raw_cache_uses_camel_case(self, cache: FileCache, sample_builds: list[Build]) -> None:
        orchestrator = _orchestrator(cache, Upstream(""))
        orchestrator.write_builds(sample_builds)

        data = json.loads(orchestrator.get_raw_cache())
        assert data == builds_to_json(sample_builds)
        assert data[0]["startingClass"] == "Astrologer"
        assert data[0]["offHandWeapon"] is None
        assert data[0]["armourSet"] == []
        assert data[1]["mainWeapon"] == "Giant-Crusher"

    def test_write_replaces_whole_list(self, cache: FileCache, sample_builds: list[Build]) -> None:
        orchestrator = _orchestrator(cache, Upstream(""))
        orchestrator.write_builds(sample_builds)
        orchestrator.write_builds(sample_builds[:1])
        assert orchestrator.get_all_builds() == sample_builds[:1]
