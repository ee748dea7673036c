from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class JobStatus(str, Enum):
    PENDING = "pending"
    SEARCHING = "searching"
    CRAWLING = "crawling"
    DOWNLOADING = "downloading"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


@dataclass(frozen=True)
class JobOptions:
    """Caller tunables for a single search job."""

    max_images: int = 500
    min_resolution: int = 300
    crawl_depth: int = 3
    max_sites: int = 5

    def __post_init__(self):
        if self.max_images <= 0:
            raise ValueError("max_images must be > 0")
        if self.min_resolution < 0:
            raise ValueError("min_resolution must be >= 0")
        if self.crawl_depth < 0:
            raise ValueError("crawl_depth must be >= 0")
        if self.max_sites <= 0:
            raise ValueError("max_sites must be > 0")


@dataclass
class CrawlJob:
    id: Optional[str]
    dataset_id: str
    subject_name: str
    status: JobStatus = JobStatus.PENDING
    discovered_sites: List[dict] = field(default_factory=list)
    current_site: Optional[str] = None
    pages_scanned: int = 0
    images_found: int = 0
    images_downloaded: int = 0
    images_staged: int = 0
    duplicates_removed: int = 0
    min_resolution: int = 300
    max_images: int = 500
    crawl_depth: int = 3
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    def __repr__(self):
        return f"<CrawlJob id={self.id} subject={self.subject_name!r} status={self.status.value}>"
