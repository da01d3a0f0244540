"""
buildgen/scrapers/fetcher.py
GET a page with bounded retries.

  attempt 1 ── fail ──► wait 0.5 s ──► attempt 2 ── fail ──► wait 1.0 s ──► attempt 3
                                                                            └─ fail → FetchError

The wait between attempts is an Event.wait(), so setting the stop event
(app shutdown) abandons the backoff immediately instead of sleeping it out.
"""

import logging
import threading
from typing import Optional

import httpx

from buildgen.core.config import FETCH_BACKOFF_S, FETCH_MAX_ATTEMPTS, FETCH_TIMEOUT_S
from buildgen.core.errors import FetchError

log = logging.getLogger("fetcher")


class Fetcher:
    def __init__(
        self,
        client: httpx.Client,
        *,
        max_attempts: int = FETCH_MAX_ATTEMPTS,
        backoff_s: float = FETCH_BACKOFF_S,
        timeout_s: float = FETCH_TIMEOUT_S,
        stop_event: Optional[threading.Event] = None,
        logger: Optional[logging.Logger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self.client       = client
        self.max_attempts = max_attempts
        self.backoff_s    = backoff_s
        self.timeout_s    = timeout_s
        self.stop_event   = stop_event or threading.Event()
        self._log         = logger or log

    def fetch(self, url: str) -> str:
        """Return the response body text, or raise FetchError."""
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = self.client.get(url, timeout=self.timeout_s)
                resp.raise_for_status()
                if attempt > 1:
                    self._log.info(f"Fetched {url} on attempt {attempt}")
                return resp.text
            except httpx.HTTPError as ex:
                last_error = ex
                self._log.warning(f"Attempt {attempt} failed to fetch {url}: {ex}")

            if attempt == self.max_attempts:
                break
            # Event.wait returns True as soon as the stop event is set
            if self.stop_event.wait(self.backoff_s * attempt):
                self._log.warning(f"Stop requested while retrying {url} — giving up")
                raise FetchError(url, attempt, "stop requested") from last_error

        raise FetchError(url, self.max_attempts, str(last_error)) from last_error
