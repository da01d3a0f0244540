"""
buildgen/core/config.py  ── Elden Build Generator API
═══════════════════════════════════════════════════════════════════════════════
Everything is resolved ONCE at import from the environment.

  BUILDGEN_CACHE_DIR        →  where cache files live      (./data/cache)
  BUILDGEN_CACHE_TTL_HOURS  →  max age of a cached list    (168 = one week)
  BUILDGEN_SOURCE_URL       →  the single build-catalog page we scrape
  BUILDGEN_REFRESH_CHECK_S  →  scheduler re-check interval (3600)

Components never import this module for their own settings — main.py reads
the values here and hands them to constructors.
═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import os

log = logging.getLogger("config")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        log.warning(f"{name}={raw!r} is not a number — using default {default}")
        return default
    if value < 0:
        log.warning(f"{name}={raw!r} is negative — using default {default}")
        return default
    return value


# ── Cache ─────────────────────────────────────────────────────────────────────
CACHE_DIR       = os.environ.get("BUILDGEN_CACHE_DIR", "./data/cache")
CACHE_TTL_HOURS = _env_float("BUILDGEN_CACHE_TTL_HOURS", 168.0)

# The whole scraped list lives under this one key
ALL_BUILDS_KEY = "all_builds"

# ── Upstream source ───────────────────────────────────────────────────────────
SOURCE_URL = os.environ.get(
    "BUILDGEN_SOURCE_URL",
    "https://eldenring.wiki.fextralife.com/Build+Calculator",
)

USER_AGENT         = "EldenBuildGeneratorBot/1.0"
FETCH_TIMEOUT_S    = 10.0
FETCH_MAX_ATTEMPTS = 3
FETCH_BACKOFF_S    = 0.5      # delay before retry n = FETCH_BACKOFF_S × n

SCRAPE_HEADERS = {
    "User-Agent":      USER_AGENT,
    "Accept":          "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

# ── Scheduler ─────────────────────────────────────────────────────────────────
REFRESH_CHECK_S = _env_float("BUILDGEN_REFRESH_CHECK_S", 3600.0)

# ── Stat vocabulary ───────────────────────────────────────────────────────────
STAT_NAMES: tuple[str, ...] = (
    "Vigor", "Mind", "Endurance", "Strength",
    "Dexterity", "Intelligence", "Faith", "Arcane",
)

MAGIC_STATS = ("Intelligence", "Faith")
MELEE_STATS = ("Strength", "Dexterity")
