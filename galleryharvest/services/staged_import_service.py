import logging
import re
from typing import List, NamedTuple, Optional, Sequence

from galleryharvest.exceptions import DatasetNotFoundError, JobNotFoundError
from galleryharvest.services.protocols import DatasetLookup, ImageRecordStore, JobStore, ObjectStore
from galleryharvest.services.staging_cache import StagingCache, extension_for

logger = logging.getLogger(__name__)


class ImportResult(NamedTuple):
    imported: int
    image_ids: List[str]
    failed: int


def _original_filename(source_url: str) -> str:
    name = source_url.rstrip("/").rsplit("/", 1)[-1].split("?", 1)[0]
    return name or "image.jpg"


class StagedImageImporter:
    """Moves reviewed images from the staging cache into a dataset.

    Imported images are always recorded with `flagged_duplicate=False`;
    duplicate detection across the whole dataset is a separate operation.
    """

    def __init__(
        self,
        staging_cache: StagingCache,
        object_store: ObjectStore,
        images: ImageRecordStore,
        datasets: DatasetLookup,
        jobs: JobStore,
    ):
        self.staging_cache = staging_cache
        self.object_store = object_store
        self.images = images
        self.datasets = datasets
        self.jobs = jobs

    def _selected(self, job_id: str, image_ids: Optional[Sequence[str]]):
        staged = self.staging_cache.get_cached_images(job_id)
        if image_ids is None:
            return staged
        wanted = set(image_ids)
        return [s for s in staged if s.id in wanted]

    def import_cached_images(
        self,
        job_id: str,
        dataset_id: str,
        image_ids: Optional[Sequence[str]] = None,
    ) -> ImportResult:
        """Import the selected staged images (all when `image_ids` is None).

        A failure on one image is logged and counted; the rest still import.
        """
        dataset = self.datasets.get_dataset(dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(dataset_id)
        job = self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)

        subject = re.sub(r"\s+", "_", job.subject_name.strip())
        created: List[str] = []
        failed = 0
        for staged in self._selected(job_id, image_ids):
            try:
                content = self.staging_cache.read_cached_image(staged)
                key = self.object_store.generate_key(
                    "images", f"{subject}_{staged.hash}{extension_for(staged.content_type)}"
                )
                self.object_store.upload_bytes(content, key, staged.content_type)
                aspect_ratio = f"{staged.width}:{staged.height}" if staged.width and staged.height else None
                record_id = self.images.create_image(
                    dataset_id=dataset_id,
                    workspace_id=dataset.workspace_id,
                    source_type="crawl",
                    source_url=staged.source_url,
                    storage_key=key,
                    original_filename=_original_filename(staged.source_url),
                    width=staged.width,
                    height=staged.height,
                    mime=staged.content_type,
                    size_bytes=staged.size_bytes,
                    hash=staged.hash,
                    aspect_ratio=aspect_ratio,
                    flagged_duplicate=False,
                )
            except Exception:
                logger.exception("[job %s] Failed to import staged image %s", job_id, staged.id)
                failed += 1
                continue
            self.staging_cache.delete_from_cache(job_id, [staged.id])
            created.append(record_id)

        logger.info("[job %s] Imported %s staged images into %s (%s failed)", job_id, len(created), dataset_id, failed)
        return ImportResult(len(created), created, failed)

    def discard_cached_images(self, job_id: str, image_ids: Optional[Sequence[str]] = None) -> int:
        if image_ids is None:
            count = len(self.staging_cache.get_cached_images(job_id))
            self.staging_cache.clear_job_cache(job_id)
            return count
        return self.staging_cache.delete_from_cache(job_id, image_ids)
