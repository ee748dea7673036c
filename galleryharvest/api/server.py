from fastapi import FastAPI

from galleryharvest.api.routers import (
    create_search_jobs_router,
    create_staged_images_router,
    create_staging_cache_router,
    create_systems_router,
)
from galleryharvest.container import ENV, SECRET_KEYS


def create_app(container) -> FastAPI:
    """Build the FastAPI application from a wired `Container`."""
    orchestrator = container.orchestrator()
    app = FastAPI(title="GalleryHarvest", version="0.1.0")
    app.include_router(create_search_jobs_router(
        orchestrator,
        default_max_sites=container.config.HARVEST_MAX_SITES(),
    ))
    app.include_router(create_staged_images_router(orchestrator))
    app.include_router(create_staging_cache_router(container.staging_cache(), container.cache_sweeper()))
    app.include_router(create_systems_router(ENV, secret_keys=SECRET_KEYS))
    return app
