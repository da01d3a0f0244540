"""
buildgen/routers/builds.py
Endpoints:
  GET  /builds                     → every build
  GET  /builds/magic               → primary stat Intelligence / Faith
  GET  /builds/melee               → primary stat Strength / Dexterity
  GET  /builds/class/{class_name}  → by starting class
  GET  /builds/primary/{stat}      → by primary stat
  GET  /builds/secondary/{stat}    → by secondary stat
  GET  /builds/cache/raw           → raw cached JSON ("" if nothing cached)
  GET  /builds/{name}              → one build, 404 if unknown
  POST /builds/refresh             → force re-scrape
  PUT  /builds                     → overwrite the cached list

Handlers are plain `def` — FastAPI runs them on its threadpool, so the
blocking file/network I/O below never stalls the event loop.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from buildgen.models import Build
from buildgen.services.build_service import BuildService

log    = logging.getLogger("builds_router")
router = APIRouter(prefix="/builds", tags=["builds"])


def get_build_service(request: Request) -> BuildService:
    return request.app.state.build_service


@router.get("", response_model=list[Build])
def list_builds(service: BuildService = Depends(get_build_service)):
    return service.get_all_builds()


@router.get("/magic", response_model=list[Build])
def magic_builds(service: BuildService = Depends(get_build_service)):
    return service.get_magic_builds()


@router.get("/melee", response_model=list[Build])
def melee_builds(service: BuildService = Depends(get_build_service)):
    return service.get_melee_builds()


@router.get("/class/{class_name}", response_model=list[Build])
def builds_by_class(class_name: str, service: BuildService = Depends(get_build_service)):
    return service.get_builds_by_class(class_name)


@router.get("/primary/{stat}", response_model=list[Build])
def builds_by_primary_stat(stat: str, service: BuildService = Depends(get_build_service)):
    return service.get_builds_by_primary_stat(stat)


@router.get("/secondary/{stat}", response_model=list[Build])
def builds_by_secondary_stat(stat: str, service: BuildService = Depends(get_build_service)):
    return service.get_builds_by_secondary_stat(stat)


@router.get("/cache/raw")
def raw_cache(service: BuildService = Depends(get_build_service)):
    raw = service.get_raw_cache()
    return Response(content=raw, media_type="application/json" if raw else "text/plain")


@router.get("/{name}", response_model=Build)
def build_by_name(name: str, service: BuildService = Depends(get_build_service)):
    build = service.get_build_by_name(name)
    if build is None:
        raise HTTPException(404, detail=f"Build '{name}' not found")
    return build


@router.post("/refresh", response_model=list[Build])
def refresh(service: BuildService = Depends(get_build_service)):
    return service.refresh_builds()


@router.put("")
def overwrite(builds: list[Build], service: BuildService = Depends(get_build_service)):
    service.write_builds(builds)
    log.info(f"Build list overwritten via API ({len(builds)} builds)")
    return {"saved": len(builds)}
