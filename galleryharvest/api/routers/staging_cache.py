from typing import Optional

from fastapi import APIRouter, Depends

from galleryharvest.api.auth import require_admin


def create_staging_cache_router(staging_cache, cache_sweeper):
    router = APIRouter(prefix="/staging-cache", tags=["Staging cache"])

    @router.get("/stats")
    def stats():
        return staging_cache.get_cache_stats()

    @router.post("/sweep", dependencies=[Depends(require_admin)])
    def sweep(max_age_hours: Optional[float] = None):
        removed = cache_sweeper.sweep(max_age_hours)
        return {"status": "swept", "removed": removed}

    @router.post("/clear", dependencies=[Depends(require_admin)])
    def clear():
        staging_cache.clear_all_cache()
        return {"status": "cleared"}

    return router
