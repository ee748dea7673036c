import hashlib
import io
import logging
import random
import re
import threading
import time
from typing import Callable, List, NamedTuple, Optional, Set
from urllib.parse import urljoin, urlparse

import requests
from PIL import Image, UnidentifiedImageError

from galleryharvest.config import USER_AGENT
from galleryharvest.domain import DownloadedImage, DownloadOptions, DownloadResult
from galleryharvest.exceptions import HttpFetchError
from galleryharvest.services.http_service import HttpService

logger = logging.getLogger(__name__)

IMAGE_ACCEPT = "image/webp,image/apng,image/*,*/*;q=0.8"
RETRY_BACKOFF_SECONDS = 1.0

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp")
EXCLUDED_IMAGE_PATTERNS = [
    re.compile(r"thumb_", re.I),
    re.compile(r"/thumb/", re.I),
    re.compile(r"_thumb\.", re.I),
    re.compile(r"icon", re.I),
    re.compile(r"logo", re.I),
    re.compile(r"avatar", re.I),
    re.compile(r"spacer", re.I),
    re.compile(r"pixel\.", re.I),
    re.compile(r"1x1\.", re.I),
]


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def _read_dimensions(content: bytes):
    with Image.open(io.BytesIO(content)) as img:
        return img.size


def download_image(
    url: str,
    options: Optional[DownloadOptions] = None,
    http_client: Callable = requests.get,
    sleep: Callable[[float], None] = time.sleep,
    user_agent: str = USER_AGENT,
    before_retry: Optional[Callable[[float], None]] = None,
) -> DownloadResult:
    """Fetch one image and apply the content policy.

    Transport errors and non-2xx responses are retried `options.retries`
    times with a linear backoff; policy violations are returned as skips and
    never retried. `before_retry` receives the backoff and is responsible for
    waiting at least that long; it defaults to `sleep`.
    """
    opts = options or DownloadOptions()
    pause = before_retry or sleep
    http = HttpService(user_agent, http_client, timeout=opts.timeout)
    try:
        headers = {
            "Accept": IMAGE_ACCEPT,
            "Accept-Language": "en-US,en;q=0.5",
            "Referer": _origin(url),
        }
    except ValueError as e:
        return DownloadResult.fail(f"Invalid URL: {e}")

    last_error = "Max retries exceeded"
    for attempt in range(opts.retries + 1):
        if attempt:
            pause(RETRY_BACKOFF_SECONDS * attempt)
        try:
            response = http.fetch_stream(url, opts.max_size_bytes, headers=headers)
        except HttpFetchError as e:
            last_error = str(e.original)
            logger.debug("Download attempt %s for %s failed: %s", attempt + 1, url, last_error)
            continue

        if not response.ok:
            last_error = f"HTTP {response.status_code}: {response.reason}".rstrip(": ")
            logger.debug("Download attempt %s for %s returned %s", attempt + 1, url, response.status_code)
            continue

        content_type = response.content_type or ""
        if not content_type.startswith("image/"):
            return DownloadResult.skip(f"Not an image: {content_type}")

        if response.content_length is not None and response.content_length > opts.max_size_bytes:
            return DownloadResult.skip(f"File too large: {response.content_length} bytes")

        if response.truncated:
            return DownloadResult.skip(f"File too large: over {opts.max_size_bytes} bytes")

        content = response.content

        try:
            width, height = _read_dimensions(content)
        except (UnidentifiedImageError, OSError) as e:
            return DownloadResult.fail(f"Unreadable image data: {e}")

        if width < opts.min_resolution or height < opts.min_resolution:
            return DownloadResult.skip(
                f"Resolution too low: {width}x{height} (minimum: {opts.min_resolution}px)"
            )

        return DownloadResult.ok(DownloadedImage(
            content=content,
            source_url=url,
            content_type=content_type,
            width=width,
            height=height,
            exact_hash=hashlib.sha256(content).hexdigest()[:16],
            size_bytes=len(content),
        ))

    return DownloadResult.fail(last_error)


class RateLimitedDownloader:
    """Serializes downloads and spaces request starts by a random delay.

    Before each request, retries included, the downloader waits until at
    least a fresh random delay in `[min_delay, max_delay]` seconds has passed
    since the previous request started. One instance is owned by one job.
    """

    def __init__(
        self,
        min_delay: float = 0.3,
        max_delay: float = 1.5,
        http_client: Callable = requests.get,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        rng: Callable[[float, float], float] = random.uniform,
        user_agent: str = USER_AGENT,
    ):
        if min_delay > max_delay:
            raise ValueError("min_delay must be <= max_delay")
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.http_client = http_client
        self.user_agent = user_agent
        self._clock = clock
        self._sleep = sleep
        self._rng = rng
        self._last_request_at: Optional[float] = None
        self._lock = threading.Lock()

    def _wait_turn(self, min_wait: float = 0.0) -> None:
        """Sleep for the longer of `min_wait` and the remaining rate-limit delay."""
        wait = min_wait
        required = self._rng(self.min_delay, self.max_delay)
        if self._last_request_at is not None:
            wait = max(wait, required - (self._clock() - self._last_request_at))
        if wait > 0:
            self._sleep(wait)
        self._last_request_at = self._clock()

    def download(
        self,
        url: str,
        options: Optional[DownloadOptions] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> DownloadResult:
        with self._lock:
            if should_cancel and should_cancel():
                return DownloadResult.cancel()
            self._wait_turn()
            if should_cancel and should_cancel():
                return DownloadResult.cancel()
            try:
                return download_image(
                    url,
                    options,
                    http_client=self.http_client,
                    sleep=self._sleep,
                    user_agent=self.user_agent,
                    before_retry=self._wait_turn,
                )
            except Exception as e:
                logger.exception("Unexpected error downloading %s", url)
                return DownloadResult.fail(str(e))


class BatchItemResult(NamedTuple):
    url: str
    result: DownloadResult
    is_exact_duplicate: bool = False


class BatchDownloadOutcome(NamedTuple):
    results: List[BatchItemResult]
    new_images: List[DownloadedImage]
    duplicate_count: int
    cancelled: bool


def download_with_deduplication(
    urls: List[str],
    seen_hashes: Set[str],
    downloader: RateLimitedDownloader,
    options: Optional[DownloadOptions] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    on_progress: Optional[Callable[[int, int, BatchItemResult], None]] = None,
) -> BatchDownloadOutcome:
    """Download `urls` in order, dropping exact-content duplicates.

    `seen_hashes` is shared with the caller and updated in place, so exact
    duplicates are caught across batches of the same job. Once cancellation
    is observed the remaining URLs are reported as cancelled without any
    network I/O.
    """
    results: List[BatchItemResult] = []
    new_images: List[DownloadedImage] = []
    duplicate_count = 0
    cancelled = False
    total = len(urls)

    for completed, url in enumerate(urls, start=1):
        if cancelled:
            item = BatchItemResult(url, DownloadResult.cancel())
        else:
            result = downloader.download(url, options, should_cancel)
            if result.cancelled:
                cancelled = True
                item = BatchItemResult(url, result)
            elif result.success and result.image is not None:
                if result.image.exact_hash in seen_hashes:
                    duplicate_count += 1
                    item = BatchItemResult(url, result, True)
                else:
                    seen_hashes.add(result.image.exact_hash)
                    new_images.append(result.image)
                    item = BatchItemResult(url, result)
            else:
                item = BatchItemResult(url, result)
        results.append(item)
        if on_progress:
            on_progress(completed, total, item)

    return BatchDownloadOutcome(results, new_images, duplicate_count, cancelled)


def is_valid_image_url(url: str) -> bool:
    """True for URLs that end in an image extension and are not page chrome."""
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    if not path.endswith(IMAGE_EXTENSIONS):
        return False
    return not any(p.search(url) for p in EXCLUDED_IMAGE_PATTERNS)


def normalize_image_url(url: str, base_url: Optional[str] = None) -> Optional[str]:
    try:
        absolute = urljoin(base_url, url) if base_url else url
        parsed = urlparse(absolute)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed.geturl()
