"""API router factory functions."""
from .search_jobs import create_search_jobs_router
from .staged_images import create_staged_images_router
from .staging_cache import create_staging_cache_router
from .systems import create_systems_router

__all__ = [
    "create_search_jobs_router",
    "create_staged_images_router",
    "create_staging_cache_router",
    "create_systems_router",
]
