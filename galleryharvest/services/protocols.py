"""Protocol (interface) definitions for the orchestrator's collaborators.

Every method here is synchronous. The orchestrator runs each job on a
worker thread and calls persistence the same way whatever the backend.
"""

from typing import List, Optional, Protocol

from galleryharvest.domain import CrawlJob, Dataset, WebSearchResult


class JobStore(Protocol):
    """Job record persistence. `update_job` writes only the named fields."""

    def create_job(self, job: CrawlJob) -> CrawlJob:
        ...

    def get_job(self, job_id: str) -> Optional[CrawlJob]:
        ...

    def update_job(self, job_id: str, **fields) -> Optional[CrawlJob]:
        ...

    def list_jobs(self, dataset_id: Optional[str] = None) -> List[CrawlJob]:
        ...


class ObjectStore(Protocol):
    """Permanent blob storage for imported images."""

    def generate_key(self, prefix: str, filename: str) -> str:
        ...

    def upload_bytes(self, content: bytes, key: str, content_type: Optional[str] = None) -> None:
        ...

    def get_download_url(self, key: str) -> str:
        ...


class SearchClient(Protocol):
    def search(self, query: str, api_key: str, count: int = 10) -> List[WebSearchResult]:
        ...


class ImageRecordStore(Protocol):
    def create_image(self, **fields) -> str:
        """Create a permanent image record and return its id."""
        ...


class DatasetLookup(Protocol):
    def get_dataset(self, dataset_id: str) -> Optional[Dataset]:
        ...
