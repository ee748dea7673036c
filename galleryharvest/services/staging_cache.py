import logging
import shutil
import threading
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional

from galleryharvest.domain import StagedImage

logger = logging.getLogger(__name__)


def extension_for(content_type: str) -> str:
    ct = (content_type or "").lower()
    if "png" in ct:
        return ".png"
    if "webp" in ct:
        return ".webp"
    if "gif" in ct:
        return ".gif"
    return ".jpg"


class StagingCache:
    """On-disk holding area for downloaded images awaiting review.

    Files live in `<cache_dir>/<job_id>/<image_id><ext>`. The index maps job
    id to its staged entries; an entry exists in the index exactly as long
    as its file exists on disk. One instance is shared by every job in the
    process, so index access goes through a lock.
    """

    def __init__(self, cache_dir):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._index: Dict[str, List[StagedImage]] = {}
        self._lock = threading.RLock()

    def job_dir(self, job_id: str) -> Path:
        return self.cache_dir / job_id

    def save_to_cache(self, job_id: str, content: bytes, metadata: Mapping) -> StagedImage:
        """Write `content` under the job's directory and index it.

        `metadata` carries `source_url`, `width`, `height`, `hash` and
        `content_type`.
        """
        image_id = str(uuid.uuid4())
        content_type = metadata.get("content_type") or "image/jpeg"
        file_path = self.job_dir(job_id) / f"{image_id}{extension_for(content_type)}"
        staged = StagedImage(
            id=image_id,
            job_id=job_id,
            source_url=metadata.get("source_url", ""),
            file_path=str(file_path),
            width=int(metadata.get("width") or 0),
            height=int(metadata.get("height") or 0),
            size_bytes=len(content),
            hash=metadata.get("hash", ""),
            content_type=content_type,
            created_at=datetime.utcnow(),
        )
        # Files and index entries change together under the lock.
        with self._lock:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(content)
            self._index.setdefault(job_id, []).append(staged)
        logger.debug("Staged %s for job %s at %s", staged.source_url, job_id, file_path)
        return staged

    def get_cached_images(self, job_id: str) -> List[StagedImage]:
        with self._lock:
            return list(self._index.get(job_id, []))

    def get_cached_image(self, job_id: str, image_id: str) -> Optional[StagedImage]:
        with self._lock:
            for staged in self._index.get(job_id, []):
                if staged.id == image_id:
                    return staged
        return None

    def read_cached_image(self, staged: StagedImage) -> bytes:
        return Path(staged.file_path).read_bytes()

    def delete_from_cache(self, job_id: str, image_ids: Iterable[str]) -> int:
        """Remove the given entries and their files. Unknown ids are ignored."""
        wanted = set(image_ids)
        with self._lock:
            entries = self._index.get(job_id)
            if not entries:
                return 0
            removed = [s for s in entries if s.id in wanted]
            self._index[job_id] = [s for s in entries if s.id not in wanted]
            for staged in removed:
                try:
                    Path(staged.file_path).unlink()
                except FileNotFoundError:
                    pass
                except OSError:
                    logger.exception("Failed to delete staged file %s", staged.file_path)
        return len(removed)

    def clear_job_cache(self, job_id: str) -> None:
        with self._lock:
            self._index.pop(job_id, None)
            job_dir = self.job_dir(job_id)
            if job_dir.exists():
                shutil.rmtree(job_dir, ignore_errors=True)

    def clear_all_cache(self) -> None:
        with self._lock:
            self._index.clear()
            if not self.cache_dir.exists():
                return
            for entry in self.cache_dir.iterdir():
                if entry.is_dir():
                    shutil.rmtree(entry, ignore_errors=True)
        logger.info("Cleared staging cache at %s", self.cache_dir)

    def get_cache_stats(self) -> dict:
        with self._lock:
            total_images = sum(len(v) for v in self._index.values())
            total_size = sum(s.size_bytes for v in self._index.values() for s in v)
            return {
                "total_jobs": len(self._index),
                "total_images": total_images,
                "total_size_bytes": total_size,
            }

    def cleanup_old_cache(self, max_age_hours: float = 24, now: Optional[datetime] = None) -> int:
        """Delete entries staged before `now - max_age_hours`; returns how many."""
        cutoff = (now or datetime.utcnow()) - timedelta(hours=max_age_hours)
        with self._lock:
            job_ids = list(self._index)
        deleted = 0
        for job_id in job_ids:
            old = [s.id for s in self.get_cached_images(job_id) if s.created_at < cutoff]
            if old:
                deleted += self.delete_from_cache(job_id, old)
            with self._lock:
                emptied = not self._index.get(job_id)
            if emptied:
                self.clear_job_cache(job_id)
        if deleted:
            logger.info("Swept %s staged images older than %sh", deleted, max_age_hours)
        return deleted
