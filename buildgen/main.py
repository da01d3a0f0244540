"""
buildgen/main.py  — Elden Build Generator API
Startup: builds the cache / scraper / service graph, warms the cache and
launches the refresh scheduler. Shutdown: stops the scheduler, aborts any
in-flight fetch backoff, closes the HTTP client.
"""

import asyncio
import json
import logging
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from buildgen.core.build_cache import BuildCache
from buildgen.core.cache import FileCache
from buildgen.core.config import (
    ALL_BUILDS_KEY, CACHE_DIR, CACHE_TTL_HOURS, REFRESH_CHECK_S, SOURCE_URL,
)
from buildgen.core.http_client import close_all, plain_client
from buildgen.core.scheduler import run_scheduler
from buildgen.routers import builds
from buildgen.scrapers.build_parser import BuildParser
from buildgen.scrapers.fetcher import Fetcher
from buildgen.scrapers.pipeline import ScrapePipeline
from buildgen.services.build_service import BuildService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger("main")


def build_services(stop_event: threading.Event) -> BuildService:
    """Wire every component with its resolved configuration."""
    cache    = FileCache(CACHE_DIR, CACHE_TTL_HOURS)
    fetcher  = Fetcher(plain_client(), stop_event=stop_event)
    pipeline = ScrapePipeline(fetcher, BuildParser())
    return BuildService(BuildCache(cache, pipeline, SOURCE_URL))


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("🚀 Elden Build Generator API starting...")
    stop_event = threading.Event()
    app.state.build_service = build_services(stop_event)
    task = asyncio.create_task(
        run_scheduler(app.state.build_service.build_cache, stop_event, REFRESH_CHECK_S)
    )
    yield
    log.info("🛑 Shutting down...")
    stop_event.set()
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    close_all()


app = FastAPI(
    title="Elden Build Generator API",
    description=(
        "Cache-first build catalog. Builds are scraped from one Fextralife "
        "page, stored as a TTL-limited JSON snapshot on disk and served "
        "through filtered views."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)

app.include_router(builds.router)


@app.get("/", tags=["meta"])
async def root():
    return {
        "status":  "online",
        "version": "1.0.0",
        "source":  SOURCE_URL,
        "endpoints": {
            "all":        "/builds",
            "by_name":    "/builds/{name}",
            "by_class":   "/builds/class/{class_name}",
            "primary":    "/builds/primary/{stat}",
            "secondary":  "/builds/secondary/{stat}",
            "magic":      "/builds/magic",
            "melee":      "/builds/melee",
            "raw_cache":  "/builds/cache/raw",
            "refresh":    "POST /builds/refresh",
            "overwrite":  "PUT /builds",
            "health":     "/health",
            "docs":       "/docs",
        },
    }


@app.get("/health", tags=["meta"])
def health(request: Request):
    """Never triggers a scrape — reads cache metadata only."""
    build_cache = request.app.state.build_service.build_cache
    summary = build_cache.cache.summary()
    entry   = summary.get(ALL_BUILDS_KEY)
    raw     = build_cache.get_raw_cache()
    try:
        count = len(json.loads(raw)) if raw else 0
    except ValueError:
        count = 0
    return {
        "status":     "healthy" if entry and not entry["expired"] else "warming_up",
        "cache_keys": summary,
        "builds": {
            "ready": bool(entry) and not entry["expired"],
            "age_s": build_cache.cache.age(ALL_BUILDS_KEY),
            "count": count,
            "skipped_blocks": [
                {"index": d.index, "heading": d.heading, "message": d.message}
                for d in build_cache.last_diagnostics
            ],
        },
    }
