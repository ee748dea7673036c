from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DownloadOptions:
    min_resolution: int = 300
    max_size_bytes: int = 50 * 1024 * 1024
    timeout: float = 30.0
    retries: int = 2


@dataclass(frozen=True)
class DownloadedImage:
    """Image bytes plus the metadata derived while downloading them."""

    content: bytes
    source_url: str
    content_type: str
    width: int
    height: int
    exact_hash: str
    size_bytes: int


@dataclass(frozen=True)
class DownloadResult:
    success: bool
    image: Optional[DownloadedImage] = None
    error: Optional[str] = None
    skipped: bool = False
    skip_reason: Optional[str] = None
    cancelled: bool = False

    @classmethod
    def ok(cls, image: DownloadedImage) -> "DownloadResult":
        return cls(success=True, image=image)

    @classmethod
    def skip(cls, reason: str) -> "DownloadResult":
        return cls(success=False, skipped=True, skip_reason=reason)

    @classmethod
    def fail(cls, error: str) -> "DownloadResult":
        return cls(success=False, error=error)

    @classmethod
    def cancel(cls) -> "DownloadResult":
        return cls(success=False, skipped=True, skip_reason="cancelled", cancelled=True)
