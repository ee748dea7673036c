"""Dependency injection container for the application."""
from dependency_injector import containers, providers
import requests
from sqlalchemy.orm import sessionmaker

from galleryharvest import config as env
from galleryharvest.db.engine import make_engine
from galleryharvest.repository.crawl_jobs import CrawlJobsRepository
from galleryharvest.repository.datasets import DatasetsRepository
from galleryharvest.repository.images import ImagesRepository
from galleryharvest.services.cache_sweeper import CacheSweeper
from galleryharvest.services.crawl_orchestrator import CrawlOrchestrator
from galleryharvest.services.http_service import HttpService
from galleryharvest.services.job_registry import InMemoryJobRegistry
from galleryharvest.services.object_store import LocalObjectStore
from galleryharvest.services.search_client import BraveSearchClient
from galleryharvest.services.site_detector import SiteDetector
from galleryharvest.services.staged_import_service import StagedImageImporter
from galleryharvest.services.staging_cache import StagingCache


# Environment variables used by the container (read via `galleryharvest.config` helpers).
#
# DATABASE_URL (str, default: "sqlite:///galleryharvest.db")
#   SQLAlchemy URL for the job, dataset and image tables.
#
# USER_AGENT (str, default: desktop Chrome string)
#   User-Agent for page fetches and image downloads.
#
# HTTP_TIMEOUT (int seconds, default: 15)
#   Timeout for page fetches. Image downloads use their own 30s timeout.
#
# BRAVE_API_KEY (str | optional)
#   Web search credentials. Jobs and discovery are refused while unset.
#
# HARVEST_CACHE_DIR (str, default: "data/staging")
#   Root of the per-job staging directories.
#
# HARVEST_OBJECT_STORE_DIR (str, default: "data/storage")
#   Root of the local permanent object store.
#
# HARVEST_MAX_CONCURRENT_JOBS (int, default: 2)
#   Worker threads; jobs beyond this wait in the executor queue as `pending`.
#
# HARVEST_MIN_DELAY / HARVEST_MAX_DELAY (float seconds, default: 0.3 / 1.5)
#   Random spacing between consecutive image downloads of one job.
#
# HARVEST_SIMILARITY_THRESHOLD (float, default: 0.92)
#   Perceptual similarity at or above which two images are duplicates.
#
# HARVEST_MAX_SITES (int, default: 5)
#   Default number of sites a job crawls when the request does not say.
#
# HARVEST_CACHE_MAX_AGE_HOURS (float, default: 24)
# HARVEST_CACHE_SWEEP_INTERVAL (int seconds, default: 3600)
#   Staged images older than the max age are swept on this interval.
#
# HARVEST_PROGRESS_FLUSH_EVERY (int, default: 10)
#   Persist download counters every N processed URLs.
ENV = {
    "DATABASE_URL": env.get_str_env("DATABASE_URL", "sqlite:///galleryharvest.db"),
    "USER_AGENT": env.USER_AGENT,
    "HTTP_TIMEOUT": env.get_int_env("HTTP_TIMEOUT", 15),
    "BRAVE_API_KEY": env.get_optional_str_env("BRAVE_API_KEY"),
    "HARVEST_CACHE_DIR": env.get_str_env("HARVEST_CACHE_DIR", "data/staging"),
    "HARVEST_OBJECT_STORE_DIR": env.get_str_env("HARVEST_OBJECT_STORE_DIR", "data/storage"),
    "HARVEST_MAX_CONCURRENT_JOBS": env.get_int_env("HARVEST_MAX_CONCURRENT_JOBS", 2),
    "HARVEST_MIN_DELAY": env.get_float_env("HARVEST_MIN_DELAY", 0.3),
    "HARVEST_MAX_DELAY": env.get_float_env("HARVEST_MAX_DELAY", 1.5),
    "HARVEST_SIMILARITY_THRESHOLD": env.get_float_env("HARVEST_SIMILARITY_THRESHOLD", 0.92),
    "HARVEST_MAX_SITES": env.get_int_env("HARVEST_MAX_SITES", 5),
    "HARVEST_CACHE_MAX_AGE_HOURS": env.get_float_env("HARVEST_CACHE_MAX_AGE_HOURS", 24.0),
    "HARVEST_CACHE_SWEEP_INTERVAL": env.get_int_env("HARVEST_CACHE_SWEEP_INTERVAL", 3600),
    "HARVEST_PROGRESS_FLUSH_EVERY": env.get_int_env("HARVEST_PROGRESS_FLUSH_EVERY", 10),
}

# Shown by /systems/config with the value masked.
SECRET_KEYS = {"BRAVE_API_KEY"}


class Container(containers.DeclarativeContainer):
    """Dependency injection container for GalleryHarvest."""

    config = providers.Configuration(default=ENV)

    # Database engine - Singleton to reuse connection pool
    db_engine = providers.Singleton(
        make_engine,
        database_url=config.DATABASE_URL,
    )
    session_factory = providers.Factory(
        sessionmaker,
        bind=db_engine,
        future=True,
    )

    crawl_jobs_repository = providers.Singleton(
        CrawlJobsRepository,
        session_factory=session_factory,
    )

    datasets_repository = providers.Singleton(
        DatasetsRepository,
        session_factory=session_factory,
    )

    images_repository = providers.Singleton(
        ImagesRepository,
        session_factory=session_factory,
    )

    job_registry = providers.Singleton(
        InMemoryJobRegistry
    )

    http_service = providers.Singleton(
        HttpService,
        user_agent=config.USER_AGENT.as_(str),
        http_client=providers.Object(requests.get),
        timeout=config.HTTP_TIMEOUT.as_(int),
    )

    search_client = providers.Singleton(
        BraveSearchClient,
        http_client=providers.Object(requests.get),
    )

    site_detector = providers.Singleton(
        SiteDetector,
        search_client=search_client,
        http_service=http_service,
    )

    staging_cache = providers.Singleton(
        StagingCache,
        cache_dir=config.HARVEST_CACHE_DIR,
    )

    object_store = providers.Singleton(
        LocalObjectStore,
        base_path=config.HARVEST_OBJECT_STORE_DIR,
    )

    staged_importer = providers.Singleton(
        StagedImageImporter,
        staging_cache=staging_cache,
        object_store=object_store,
        images=images_repository,
        datasets=datasets_repository,
        jobs=crawl_jobs_repository,
    )

    orchestrator = providers.Singleton(
        CrawlOrchestrator,
        jobs=crawl_jobs_repository,
        datasets=datasets_repository,
        site_detector=site_detector,
        http_service=http_service,
        staging_cache=staging_cache,
        importer=staged_importer,
        job_registry=job_registry,
        search_api_key=config.BRAVE_API_KEY,
        max_workers=config.HARVEST_MAX_CONCURRENT_JOBS.as_(int),
        min_delay=config.HARVEST_MIN_DELAY.as_(float),
        max_delay=config.HARVEST_MAX_DELAY.as_(float),
        similarity_threshold=config.HARVEST_SIMILARITY_THRESHOLD.as_(float),
        progress_flush_every=config.HARVEST_PROGRESS_FLUSH_EVERY.as_(int),
    )

    cache_sweeper = providers.Singleton(
        CacheSweeper,
        staging_cache=staging_cache,
        interval_seconds=config.HARVEST_CACHE_SWEEP_INTERVAL.as_(int),
        max_age_hours=config.HARVEST_CACHE_MAX_AGE_HOURS.as_(float),
    )
