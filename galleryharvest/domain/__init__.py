"""Domain objects for GalleryHarvest - explicit re-exports to satisfy linters."""
from .fan_site import FanSite as FanSite, GalleryType as GalleryType
from .search_result import WebSearchResult as WebSearchResult
from .crawl_state import CrawlState as CrawlState
from .gallery_image import GalleryImage as GalleryImage
from .downloaded_image import (
    DownloadedImage as DownloadedImage,
    DownloadOptions as DownloadOptions,
    DownloadResult as DownloadResult,
)
from .crawl_job import CrawlJob as CrawlJob, JobOptions as JobOptions, JobStatus as JobStatus
from .job_result import JobRunResult as JobRunResult
from .staged_image import StagedImage as StagedImage
from .dataset import Dataset as Dataset

__all__ = [
    "FanSite",
    "GalleryType",
    "WebSearchResult",
    "CrawlState",
    "GalleryImage",
    "DownloadedImage",
    "DownloadOptions",
    "DownloadResult",
    "CrawlJob",
    "JobOptions",
    "JobStatus",
    "JobRunResult",
    "StagedImage",
    "Dataset",
]
