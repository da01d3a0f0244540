"""
buildgen/scrapers/pipeline.py
Fetch a URL, parse it, return the builds.

FetchError propagates to the caller — deciding what a failed scrape means
for the cache is BuildCache's job, not ours.
"""

import logging
from typing import Optional

from buildgen.scrapers.build_parser import BuildParser, ParseResult
from buildgen.scrapers.fetcher import Fetcher

log = logging.getLogger("pipeline")


class ScrapePipeline:
    def __init__(
        self,
        fetcher: Fetcher,
        parser: BuildParser,
        logger: Optional[logging.Logger] = None,
    ):
        self.fetcher = fetcher
        self.parser  = parser
        self._log    = logger or log

    def scrape(self, url: str) -> ParseResult:
        html   = self.fetcher.fetch(url)
        result = self.parser.parse(html)
        self._log.info(f"Scraped {len(result.builds)} builds from {url}")
        return result
