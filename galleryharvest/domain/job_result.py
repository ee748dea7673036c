"""Result of running one job's pipeline."""
from typing import List, NamedTuple, Optional


class JobRunResult(NamedTuple):
    """Returned by the orchestrator's execution function.

    `status` is "completed", "failed" or "partial". "partial" means the run
    was cancelled mid-flight; the persisted job status is then "cancelled".
    """
    job_id: str
    status: str
    images_downloaded: int
    duplicates_removed: int
    pages_scanned: int
    sites_discovered: int
    staged_image_ids: List[str]
    error: Optional[str] = None
