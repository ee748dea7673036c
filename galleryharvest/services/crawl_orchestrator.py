import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from galleryharvest.domain import (
    CrawlJob,
    DownloadOptions,
    FanSite,
    JobOptions,
    JobRunResult,
    JobStatus,
    StagedImage,
)
from galleryharvest.exceptions import DatasetNotFoundError, JobNotFoundError, SearchApiKeyMissingError
from galleryharvest.services.deduplicator import DEFAULT_SIMILARITY_THRESHOLD, ImageDeduplicator
from galleryharvest.services.gallery_crawler import GalleryCrawler
from galleryharvest.services.http_service import HttpService
from galleryharvest.services.image_downloader import (
    BatchItemResult,
    RateLimitedDownloader,
    download_with_deduplication,
)
from galleryharvest.services.job_registry import InMemoryJobRegistry
from galleryharvest.services.protocols import DatasetLookup, JobStore
from galleryharvest.services.site_detector import SiteDetector
from galleryharvest.services.staged_import_service import ImportResult, StagedImageImporter
from galleryharvest.services.staging_cache import StagingCache

logger = logging.getLogger(__name__)

NO_SITES_MESSAGE = "No fan sites discovered"


@dataclass
class _JobProgress:
    pages_scanned: int = 0
    images_found: int = 0
    images_downloaded: int = 0
    images_staged: int = 0
    duplicates_removed: int = 0
    staged_image_ids: List[str] = field(default_factory=list)

    def counters(self) -> dict:
        return {
            "pages_scanned": self.pages_scanned,
            "images_found": self.images_found,
            "images_downloaded": self.images_downloaded,
            "images_staged": self.images_staged,
            "duplicates_removed": self.duplicates_removed,
        }


class CrawlOrchestrator:
    """Owns search jobs from creation to a terminal status.

    `start_job` creates the record and hands `run_job` to a worker thread.
    Each job gets its own rate-limited downloader, perceptual deduplicator
    and crawler state; the only state shared across jobs is the cancel-flag
    registry and the staging cache, both internally locked.

    Job store calls are synchronous and made the same way from every thread.
    Once a job reaches a terminal status nothing further is written to it:
    a cancelled job's final counters are written together with its status.
    """

    def __init__(
        self,
        *,
        jobs: JobStore,
        datasets: DatasetLookup,
        site_detector: SiteDetector,
        http_service: HttpService,
        staging_cache: StagingCache,
        importer: StagedImageImporter,
        job_registry: Optional[InMemoryJobRegistry] = None,
        search_api_key: Optional[str] = None,
        max_workers: int = 2,
        min_delay: float = 0.3,
        max_delay: float = 1.5,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        progress_flush_every: int = 10,
        page_delay_range: Tuple[float, float] = (0.5, 1.5),
        crawler_factory: Callable[..., GalleryCrawler] = GalleryCrawler,
        downloader_factory: Optional[Callable[[], RateLimitedDownloader]] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.jobs = jobs
        self.datasets = datasets
        self.site_detector = site_detector
        self.http_service = http_service
        self.staging_cache = staging_cache
        self.importer = importer
        self.job_registry = job_registry or InMemoryJobRegistry()
        self.search_api_key = search_api_key
        self.similarity_threshold = similarity_threshold
        self.progress_flush_every = max(1, int(progress_flush_every))
        self.page_delay_range = page_delay_range
        self.crawler_factory = crawler_factory
        self.downloader_factory = downloader_factory or (
            lambda: RateLimitedDownloader(min_delay=min_delay, max_delay=max_delay, http_client=http_service.http_client)
        )
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="harvest-job")
        self._futures: Dict[str, Future] = {}
        self._sleep = sleep

    # ----- caller-facing operations -----

    def _require_api_key(self) -> str:
        if not self.search_api_key:
            raise SearchApiKeyMissingError()
        return self.search_api_key

    def start_job(self, subject_name: str, dataset_id: str, options: Optional[JobOptions] = None) -> CrawlJob:
        """Validate, create the job record and schedule its pipeline. Returns immediately."""
        subject = (subject_name or "").strip()
        if not subject:
            raise ValueError("subject_name is required")
        if not dataset_id:
            raise ValueError("dataset_id is required")
        if self.datasets.get_dataset(dataset_id) is None:
            raise DatasetNotFoundError(dataset_id)
        self._require_api_key()
        options = options or JobOptions()

        job = self.jobs.create_job(CrawlJob(
            id=None,
            dataset_id=dataset_id,
            subject_name=subject,
            min_resolution=options.min_resolution,
            max_images=options.max_images,
            crawl_depth=options.crawl_depth,
        ))
        self.job_registry.register(job.id)
        future = self._executor.submit(self._run_job_guarded, job.id, options)
        self._futures[job.id] = future
        # Only unfinished jobs are tracked.
        future.add_done_callback(lambda _f, job_id=job.id: self._futures.pop(job_id, None))
        logger.info("[job %s] Scheduled search for %r into dataset %s", job.id, subject, dataset_id)
        return job

    def get_job(self, job_id: str) -> CrawlJob:
        job = self.jobs.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self, dataset_id: Optional[str] = None) -> List[CrawlJob]:
        return self.jobs.list_jobs(dataset_id=dataset_id)

    def cancel_job(self, job_id: str) -> bool:
        """Request cancellation. Returns False when the job already finished.

        A running worker persists `cancelled` with its final counters when it
        next checks the flag. A job with no live worker is marked directly.
        Staged images are kept either way.
        """
        job = self.get_job(job_id)
        if job.status.is_terminal:
            return False
        if self.job_registry.cancel(job_id):
            logger.info("[job %s] Cancellation requested", job_id)
            return True
        self.jobs.update_job(job_id, status=JobStatus.CANCELLED, completed_at=datetime.utcnow())
        logger.info("[job %s] Marked cancelled (no active worker)", job_id)
        return True

    def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> Optional[JobRunResult]:
        """Block until a scheduled job finishes.

        Returns None when no worker for the job is pending, including when it
        has already finished; its outcome is then on the persisted job.
        """
        future = self._futures.get(job_id)
        if future is None:
            return None
        return future.result(timeout=timeout)

    def discover_sites(self, subject_name: str, max_sites: int = 5) -> List[FanSite]:
        """Preview the sites a job would crawl, without creating a job."""
        subject = (subject_name or "").strip()
        if not subject:
            raise ValueError("subject_name is required")
        return self.site_detector.discover_fan_sites(subject, self._require_api_key(), max_sites=max_sites)

    def list_staged_images(self, job_id: str) -> List[StagedImage]:
        return self.staging_cache.get_cached_images(job_id)

    def get_staged_image(self, job_id: str, image_id: str) -> Optional[StagedImage]:
        return self.staging_cache.get_cached_image(job_id, image_id)

    def read_staged_image(self, job_id: str, image_id: str) -> Optional[Tuple[StagedImage, bytes]]:
        staged = self.staging_cache.get_cached_image(job_id, image_id)
        if staged is None:
            return None
        return staged, self.staging_cache.read_cached_image(staged)

    def import_staged_images(
        self, job_id: str, dataset_id: str, image_ids: Optional[Sequence[str]] = None
    ) -> ImportResult:
        return self.importer.import_cached_images(job_id, dataset_id, image_ids)

    def discard_staged_images(self, job_id: str, image_ids: Optional[Sequence[str]] = None) -> int:
        return self.importer.discard_cached_images(job_id, image_ids)

    def shutdown(self, clear_cache: bool = True, wait: bool = False) -> None:
        cancelled = self.job_registry.cancel_all()
        if cancelled:
            logger.info("Cancelling %s running jobs on shutdown", len(cancelled))
        self._executor.shutdown(wait=wait)
        if clear_cache:
            self.staging_cache.clear_all_cache()

    # ----- pipeline -----

    def _run_job_guarded(self, job_id: str, options: JobOptions) -> JobRunResult:
        try:
            return self.run_job(job_id, options)
        finally:
            self.job_registry.finish(job_id)

    def _flush(self, job_id: str, progress: _JobProgress) -> None:
        try:
            self.jobs.update_job(job_id, **progress.counters())
        except Exception:
            logger.exception("[job %s] Failed to persist progress", job_id)

    def _result(self, job_id: str, status: str, progress: _JobProgress, sites: int, error=None) -> JobRunResult:
        return JobRunResult(
            job_id=job_id,
            status=status,
            images_downloaded=progress.images_downloaded,
            duplicates_removed=progress.duplicates_removed,
            pages_scanned=progress.pages_scanned,
            sites_discovered=sites,
            staged_image_ids=list(progress.staged_image_ids),
            error=error,
        )

    def _finish_cancelled(self, job_id: str, progress: _JobProgress, sites: int) -> JobRunResult:
        logger.info("[job %s] Cancelled with %s staged images", job_id, progress.images_staged)
        self.jobs.update_job(
            job_id,
            status=JobStatus.CANCELLED,
            current_site=None,
            completed_at=datetime.utcnow(),
            **progress.counters(),
        )
        return self._result(job_id, "partial", progress, sites)

    def run_job(self, job_id: str, options: Optional[JobOptions] = None) -> JobRunResult:
        """Run the whole pipeline for one job on the calling thread."""
        options = options or JobOptions()
        should_cancel = self.job_registry.should_cancel(job_id)
        progress = _JobProgress()
        sites: List[FanSite] = []

        try:
            job = self.get_job(job_id)
            if should_cancel():
                # Cancelled while still queued behind other jobs.
                return self._finish_cancelled(job_id, progress, 0)
            self.jobs.update_job(job_id, status=JobStatus.SEARCHING)
            logger.info("[job %s] Discovering sites for %r", job_id, job.subject_name)
            sites = self.site_detector.discover_fan_sites(
                job.subject_name, self._require_api_key(), max_sites=options.max_sites
            )
            self.jobs.update_job(job_id, discovered_sites=[s.to_dict() for s in sites])
            logger.info("[job %s] Found %s candidate sites", job_id, len(sites))

            if should_cancel():
                return self._finish_cancelled(job_id, progress, len(sites))

            if not sites:
                self.jobs.update_job(
                    job_id,
                    status=JobStatus.COMPLETED,
                    error=NO_SITES_MESSAGE,
                    completed_at=datetime.utcnow(),
                )
                return self._result(job_id, "completed", progress, 0, NO_SITES_MESSAGE)

            seen_hashes = set()
            deduplicator = ImageDeduplicator(self.similarity_threshold)
            downloader = self.downloader_factory()

            for site in sites:
                if should_cancel():
                    break
                if progress.images_downloaded >= options.max_images:
                    logger.info("[job %s] Reached image budget of %s", job_id, options.max_images)
                    break
                if not site.is_known_engine or not site.category_url:
                    logger.info("[job %s] Skipping %s: no supported gallery engine", job_id, site.url)
                    continue
                try:
                    self._process_site(
                        job_id, site, options, progress, seen_hashes, deduplicator, downloader, should_cancel
                    )
                except Exception:
                    logger.exception("[job %s] Error processing site %s", job_id, site.url)
                if not should_cancel():
                    self._flush(job_id, progress)

            if should_cancel():
                return self._finish_cancelled(job_id, progress, len(sites))

            self.jobs.update_job(
                job_id,
                status=JobStatus.COMPLETED,
                current_site=None,
                completed_at=datetime.utcnow(),
                **progress.counters(),
            )
            logger.info(
                "[job %s] Completed: %s downloaded, %s duplicates removed",
                job_id, progress.images_downloaded, progress.duplicates_removed,
            )
            return self._result(job_id, "completed", progress, len(sites))

        except Exception as e:
            logger.exception("[job %s] Fatal error", job_id)
            try:
                self.jobs.update_job(
                    job_id,
                    status=JobStatus.FAILED,
                    error=str(e),
                    completed_at=datetime.utcnow(),
                    **progress.counters(),
                )
            except Exception:
                logger.exception("[job %s] Could not record failure", job_id)
            return self._result(job_id, "failed", progress, len(sites), str(e))

    def _process_site(
        self,
        job_id: str,
        site: FanSite,
        options: JobOptions,
        progress: _JobProgress,
        seen_hashes: set,
        deduplicator: ImageDeduplicator,
        downloader: RateLimitedDownloader,
        should_cancel: Callable[[], bool],
    ) -> None:
        logger.info("[job %s] Crawling %s from %s", job_id, site.url, site.category_url)
        self.jobs.update_job(job_id, status=JobStatus.CRAWLING, current_site=site.url)

        pages_before = progress.pages_scanned
        found_before = progress.images_found

        def on_crawl_progress(state):
            if should_cancel():
                return
            progress.pages_scanned = pages_before + state.pages_scanned
            progress.images_found = found_before + state.images_found
            try:
                self.jobs.update_job(job_id, pages_scanned=progress.pages_scanned, images_found=progress.images_found)
            except Exception:
                logger.exception("[job %s] Failed to persist crawl progress", job_id)

        crawler = self.crawler_factory(
            site.category_url,
            self.http_service,
            max_depth=options.crawl_depth,
            on_progress=on_crawl_progress,
            delay_range=self.page_delay_range,
            sleep=self._sleep,
            should_cancel=should_cancel,
        )
        remaining = options.max_images - progress.images_downloaded
        images = crawler.crawl(remaining)
        progress.images_found = found_before + len(images)
        logger.info("[job %s] Found %s images on %s", job_id, len(images), site.url)
        if not images or should_cancel():
            return

        self.jobs.update_job(job_id, status=JobStatus.DOWNLOADING, images_found=progress.images_found)
        download_options = DownloadOptions(min_resolution=options.min_resolution)

        def on_item(completed: int, total: int, item: BatchItemResult) -> None:
            self._handle_download(job_id, item, progress, deduplicator)
            if completed % self.progress_flush_every == 0 and not should_cancel():
                self._flush(job_id, progress)

        download_with_deduplication(
            [img.full_size_url for img in images],
            seen_hashes,
            downloader,
            download_options,
            should_cancel=should_cancel,
            on_progress=on_item,
        )

    def _handle_download(
        self, job_id: str, item: BatchItemResult, progress: _JobProgress, deduplicator: ImageDeduplicator
    ) -> None:
        result = item.result
        if result.cancelled:
            return
        if item.is_exact_duplicate:
            progress.duplicates_removed += 1
            return
        if not result.success:
            if result.skipped:
                logger.debug("[job %s] Skipped %s: %s", job_id, item.url, result.skip_reason)
            else:
                logger.info("[job %s] Download failed for %s: %s", job_id, item.url, result.error)
            return

        image = result.image
        try:
            near = deduplicator.add_image(image.exact_hash, image.content)
        except Exception:
            logger.exception("[job %s] Could not hash %s", job_id, item.url)
            return
        if near.is_duplicate:
            progress.duplicates_removed += 1
            return

        progress.images_downloaded += 1
        try:
            staged = self.staging_cache.save_to_cache(job_id, image.content, {
                "source_url": image.source_url,
                "width": image.width,
                "height": image.height,
                "hash": image.exact_hash,
                "content_type": image.content_type,
            })
        except OSError:
            logger.exception("[job %s] Could not stage %s", job_id, item.url)
            return
        progress.images_staged += 1
        progress.staged_image_ids.append(staged.id)
