from .crawl_jobs import CrawlJobsRepository
from .datasets import DatasetsRepository
from .images import ImagesRepository

__all__ = ["CrawlJobsRepository", "DatasetsRepository", "ImagesRepository"]
