"""
buildgen/core/http_client.py
Shared blocking httpx client for the build-catalog scraper.
  • plain_client() → client carrying the bot User-Agent and a 10 s timeout
  • close_all()    → called once from the app lifespan on shutdown

Blocking on purpose: fetches run on request-handler threads or in
asyncio.to_thread(), never on the event loop.
"""

import threading

import httpx

from buildgen.core.config import FETCH_TIMEOUT_S, SCRAPE_HEADERS

_plain_client: httpx.Client | None = None
_client_lock = threading.Lock()

_LIMITS  = httpx.Limits(max_connections=10, max_keepalive_connections=5)
_TIMEOUT = httpx.Timeout(FETCH_TIMEOUT_S)


def plain_client() -> httpx.Client:
    global _plain_client
    with _client_lock:
        if _plain_client is None or _plain_client.is_closed:
            _plain_client = httpx.Client(
                headers=SCRAPE_HEADERS,
                timeout=_TIMEOUT,
                follow_redirects=True,
                limits=_LIMITS,
            )
        return _plain_client


def close_all() -> None:
    global _plain_client
    with _client_lock:
        if _plain_client and not _plain_client.is_closed:
            _plain_client.close()
        _plain_client = None
