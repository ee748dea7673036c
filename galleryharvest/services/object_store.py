import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Optional

logger = logging.getLogger(__name__)


class LocalObjectStore:
    """Filesystem-backed object store.

    Keys look like `/images/<uuid>.jpg` and map to paths under `base_path`.
    """

    def __init__(self, base_path, url_prefix: str = "/storage/local"):
        self.base_path = Path(base_path)
        self.url_prefix = url_prefix.rstrip("/")
        self.base_path.mkdir(parents=True, exist_ok=True)

    def generate_key(self, prefix: str, filename: str) -> str:
        ext = PurePosixPath(filename).suffix
        return f"/{prefix.strip('/')}/{uuid.uuid4()}{ext}"

    def full_path(self, key: str) -> Path:
        relative = key.lstrip("/")
        path = (self.base_path / relative).resolve()
        if self.base_path.resolve() not in path.parents:
            raise ValueError(f"Storage key escapes base path: {key}")
        return path

    def upload_bytes(self, content: bytes, key: str, content_type: Optional[str] = None) -> None:
        path = self.full_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.debug("Stored %s bytes at %s (%s)", len(content), path, content_type)

    def get_bytes(self, key: str) -> bytes:
        return self.full_path(key).read_bytes()

    def exists(self, key: str) -> bool:
        return self.full_path(key).exists()

    def delete(self, key: str) -> None:
        path = self.full_path(key)
        if path.exists():
            path.unlink()

    def get_download_url(self, key: str) -> str:
        return f"{self.url_prefix}/{key.lstrip('/')}"
