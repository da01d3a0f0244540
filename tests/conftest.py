"""Shared test fixtures for buildgen.

Provides an isolated file cache rooted in ``tmp_path``, a controllable
clock, mock-transport HTTP clients and the sample build page.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from buildgen.core.cache import FileCache
from buildgen.models import Build


FIXTURES_DIR = Path(__file__).parent / "fixtures"

SOURCE_URL = "https://builds.example.com/Build+Calculator"


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def sample_html() -> str:
    return (FIXTURES_DIR / "sample_builds.html").read_text(encoding="utf-8")


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def cache(cache_dir: Path) -> FileCache:
    """FileCache with the default one-week TTL."""
    return FileCache(cache_dir, 168)


@pytest.fixture
def sample_builds() -> list[Build]:
    return [
        Build(
            name="Moon Sorcerer",
            level="120",
            starting_class="Astrologer",
            primary_stats=["Intelligence"],
            secondary_stats=["Mind"],
            stats={"Intelligence": 80, "Mind": 30},
        ),
        Build(
            name="Strength Brute",
            starting_class="Hero",
            main_weapon="Giant-Crusher",
            primary_stats=["Strength"],
            secondary_stats=["Vigor", "Endurance"],
        ),
        Build(
            name="Faith Paladin",
            starting_class="Confessor",
            primary_stats=["Faith", "Strength"],
            secondary_stats=["Mind"],
        ),
    ]


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    """httpx.Client whose requests are answered by ``handler``."""
    return httpx.Client(transport=httpx.MockTransport(handler))
