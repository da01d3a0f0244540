"""
buildgen/core/scheduler.py
═══════════════════════════════════════════════════════════════════════════════
Background warm-up / refresh loop:

  1. ONE scheduler instance ever (guarded by _running flag)
  2. Runs immediately on startup so the cache is warm before the first request
  3. Every REFRESH_CHECK_S it calls get_all_builds(): a fresh cache costs one
     file read, an expired one triggers the scrape here instead of on a
     user request
  4. Errors are logged and the loop carries on
  5. Setting the stop event ends the loop (and aborts any fetch backoff)

The work is blocking, so each cycle runs in asyncio.to_thread().
═══════════════════════════════════════════════════════════════════════════════
"""

import asyncio
import logging
import threading
import time

from buildgen.core.build_cache import BuildCache

log = logging.getLogger("scheduler")

_running = False


async def _run_cycle(build_cache: BuildCache) -> None:
    t0 = time.time()
    builds = await asyncio.to_thread(build_cache.get_all_builds)
    log.info(f"Cycle complete in {time.time() - t0:.1f}s — {len(builds)} builds available")


async def run_scheduler(
    build_cache: BuildCache,
    stop_event: threading.Event,
    interval_s: float,
) -> None:
    """
    Called once at startup. Runs until stop_event is set.
    Never starts a second instance — guarded by _running flag.
    """
    global _running
    if _running:
        log.warning("Scheduler already running — ignoring duplicate start")
        return
    _running = True
    log.info("Scheduler started")

    try:
        while not stop_event.is_set():
            try:
                await _run_cycle(build_cache)
            except Exception as ex:
                log.error(f"Cycle error (continuing): {ex}")

            log.debug(f"Next cycle in {interval_s:.0f}s")
            if await asyncio.to_thread(stop_event.wait, interval_s):
                break
    finally:
        _running = False
        log.info("Scheduler stopped")
