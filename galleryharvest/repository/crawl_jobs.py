import logging
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from galleryharvest.db.models import CrawlJob as DBCrawlJob
from galleryharvest.domain import CrawlJob, JobStatus

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "status",
    "discovered_sites",
    "current_site",
    "pages_scanned",
    "images_found",
    "images_downloaded",
    "images_staged",
    "duplicates_removed",
    "error",
    "completed_at",
}


class CrawlJobsRepository:
    """Persistent job record store.

    Requires an explicit `session_factory` (callable returning a `Session`).
    `update_job` writes only the named columns, so concurrent writers touching
    different fields do not clobber each other.
    """

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def _to_domain(self, row: DBCrawlJob) -> CrawlJob:
        return CrawlJob(
            id=row.id,
            dataset_id=row.dataset_id,
            subject_name=row.subject_name,
            status=JobStatus(row.status),
            discovered_sites=list(row.discovered_sites or []),
            current_site=row.current_site,
            pages_scanned=row.pages_scanned or 0,
            images_found=row.images_found or 0,
            images_downloaded=row.images_downloaded or 0,
            images_staged=row.images_staged or 0,
            duplicates_removed=row.duplicates_removed or 0,
            min_resolution=row.min_resolution,
            max_images=row.max_images,
            crawl_depth=row.crawl_depth,
            error=row.error,
            created_at=row.created_at,
            updated_at=row.updated_at,
            completed_at=row.completed_at,
        )

    def create_job(self, job: CrawlJob) -> CrawlJob:
        now = datetime.utcnow()
        with self.get_session() as session:
            row = DBCrawlJob(
                id=job.id or str(uuid.uuid4()),
                dataset_id=job.dataset_id,
                subject_name=job.subject_name,
                status=JobStatus(job.status).value,
                discovered_sites=list(job.discovered_sites),
                current_site=job.current_site,
                pages_scanned=job.pages_scanned,
                images_found=job.images_found,
                images_downloaded=job.images_downloaded,
                images_staged=job.images_staged,
                duplicates_removed=job.duplicates_removed,
                min_resolution=job.min_resolution,
                max_images=job.max_images,
                crawl_depth=job.crawl_depth,
                error=job.error,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_domain(row)

    def get_job(self, job_id: str) -> Optional[CrawlJob]:
        with self.get_session() as session:
            row = session.get(DBCrawlJob, job_id)
            if not row:
                return None
            return self._to_domain(row)

    def update_job(self, job_id: str, **fields) -> Optional[CrawlJob]:
        """Apply a partial update and return the updated job, or None if missing.

        A status change away from a terminal status is ignored; counters may
        still be written after a job is cancelled.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown crawl job fields: {sorted(unknown)}")
        with self.get_session() as session:
            row = session.get(DBCrawlJob, job_id)
            if not row:
                return None
            if "status" in fields:
                new_status = JobStatus(fields["status"])
                if JobStatus(row.status).is_terminal and new_status.value != row.status:
                    logger.debug("Ignoring status %s for terminal job %s (%s)", new_status.value, job_id, row.status)
                    fields.pop("status")
                else:
                    fields["status"] = new_status.value
            for name, value in fields.items():
                setattr(row, name, value)
            row.updated_at = datetime.utcnow()
            session.commit()
            session.refresh(row)
            return self._to_domain(row)

    def list_jobs(self, dataset_id: Optional[str] = None, limit: int = 50) -> List[CrawlJob]:
        with self.get_session() as session:
            q = select(DBCrawlJob)
            if dataset_id is not None:
                q = q.where(DBCrawlJob.dataset_id == dataset_id)
            q = q.order_by(DBCrawlJob.created_at.desc()).limit(limit)
            rows = session.execute(q).scalars().all()
            return [self._to_domain(r) for r in rows]
