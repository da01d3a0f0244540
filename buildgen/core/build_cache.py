"""
buildgen/core/build_cache.py
═══════════════════════════════════════════════════════════════════════════
Cache-or-scrape policy for the build list.

  get_all_builds()  → cached list if fresh, otherwise refresh
  refresh_builds()  → invalidate, scrape, write (even an empty list), return
  write_builds()    → admin overwrite, no scraping
  get_raw_cache()   → raw JSON text, "" if nothing is cached

Guarantees:
  • Callers never see an exception from a failed fetch — worst case is []
  • A failed refresh still overwrites the cache with [] (never left stale)
  • Only one refresh runs at a time; concurrent cold callers wait for it
    and then read what it wrote instead of scraping again
═══════════════════════════════════════════════════════════════════════════
"""

import logging
import threading
from typing import Optional

from buildgen.core.cache import FileCache, Hit
from buildgen.core.config import ALL_BUILDS_KEY
from buildgen.core.errors import FetchError
from buildgen.models import BUILD_LIST, Build, builds_to_json
from buildgen.scrapers.build_parser import ParseDiagnostic
from buildgen.scrapers.pipeline import ScrapePipeline

log = logging.getLogger("build_cache")


class BuildCache:
    def __init__(
        self,
        cache: FileCache,
        pipeline: ScrapePipeline,
        source_url: str,
        *,
        key: str = ALL_BUILDS_KEY,
        logger: Optional[logging.Logger] = None,
    ):
        self.cache      = cache
        self.pipeline   = pipeline
        self.source_url = source_url
        self.key        = key
        self._log       = logger or log
        self._refresh_lock = threading.Lock()
        self.last_diagnostics: list[ParseDiagnostic] = []

    def _cached(self) -> Optional[list[Build]]:
        found = self.cache.read(self.key, BUILD_LIST)
        return found.value if isinstance(found, Hit) else None

    def get_all_builds(self) -> list[Build]:
        builds = self._cached()
        if builds is not None:
            self._log.info(f"Loaded {len(builds)} builds from cache")
            return builds

        with self._refresh_lock:
            # Another thread may have refreshed while we waited
            builds = self._cached()
            if builds is not None:
                return builds
            self._log.info("No valid cached build list — scraping fresh data...")
            return self._refresh_locked()

    def refresh_builds(self) -> list[Build]:
        with self._refresh_lock:
            return self._refresh_locked()

    def _refresh_locked(self) -> list[Build]:
        self.cache.invalidate(self.key)

        try:
            result = self.pipeline.scrape(self.source_url)
            builds = result.builds
            self.last_diagnostics = list(result.diagnostics)
        except FetchError as ex:
            self._log.error(f"Failed to scrape builds from {self.source_url}: {ex}")
            builds = []
            self.last_diagnostics = []
        except Exception as ex:
            # e.g. the shared client closed under an in-flight shutdown scrape
            self._log.error(f"Scrape of {self.source_url} aborted: {type(ex).__name__}: {ex}")
            builds = []
            self.last_diagnostics = []

        self.cache.write(self.key, builds_to_json(builds))
        self._log.info(f"Refreshed and cached {len(builds)} builds")
        return builds

    def write_builds(self, builds: list[Build]) -> None:
        self.cache.write(self.key, builds_to_json(builds))
        self._log.info(f"Manually updated build cache: {len(builds)} builds saved")

    def get_raw_cache(self) -> str:
        raw = self.cache.read_raw(self.key)
        return raw.value if isinstance(raw, Hit) else ""
