"""
buildgen/services/build_service.py
Filtered, read-only views over the cached build list.
All string matching is case-insensitive; blank filters match nothing.
"""

import logging
from typing import Callable, Optional

from buildgen.core.build_cache import BuildCache
from buildgen.models import Build

log = logging.getLogger("build_service")


def _has_stat(stats: list[str], wanted: str) -> bool:
    w = wanted.lower()
    return any(s.lower() == w for s in stats)


class BuildService:
    def __init__(self, build_cache: BuildCache):
        self.build_cache = build_cache

    def get_all_builds(self) -> list[Build]:
        return self.build_cache.get_all_builds()

    def get_build_by_name(self, name: Optional[str]) -> Optional[Build]:
        if not name:
            return None
        wanted = name.lower()
        return next(
            (b for b in self.get_all_builds() if b.name.lower() == wanted),
            None,
        )

    def get_builds_by_class(self, class_name: Optional[str]) -> list[Build]:
        if not class_name:
            return []
        wanted = class_name.lower()
        return [
            b for b in self.get_all_builds()
            if b.starting_class and b.starting_class.lower() == wanted
        ]

    def get_builds_by_primary_stat(self, stat: Optional[str]) -> list[Build]:
        if not stat:
            return []
        return [b for b in self.get_all_builds() if _has_stat(b.primary_stats, stat)]

    def get_builds_by_secondary_stat(self, stat: Optional[str]) -> list[Build]:
        if not stat:
            return []
        return [b for b in self.get_all_builds() if _has_stat(b.secondary_stats, stat)]

    def get_magic_builds(self) -> list[Build]:
        return [b for b in self.get_all_builds() if b.is_magic_build()]

    def get_melee_builds(self) -> list[Build]:
        return [b for b in self.get_all_builds() if b.is_melee_build()]

    def filter_builds(self, predicate: Optional[Callable[[Build], bool]]) -> list[Build]:
        builds = self.get_all_builds()
        if predicate is None:
            return builds
        return [b for b in builds if predicate(b)]

    def refresh_builds(self) -> list[Build]:
        refreshed = self.build_cache.refresh_builds()
        log.info(f"Refreshed {len(refreshed)} builds")
        return refreshed

    def write_builds(self, builds: list[Build]) -> None:
        self.build_cache.write_builds(builds)

    def get_raw_cache(self) -> str:
        return self.build_cache.get_raw_cache()
