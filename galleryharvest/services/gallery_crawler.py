import logging
import random
import time
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from galleryharvest.domain import CrawlState, GalleryImage
from galleryharvest.exceptions import HttpFetchError
from galleryharvest.services import gallery_pages as pages
from galleryharvest.services.http_service import HttpService

logger = logging.getLogger(__name__)

NEXT_LINK_TEXTS = (">", "»")


class GalleryCrawler:
    """Breadth-first walk of one gallery site from its entry URL.

    Each queued URL carries a depth. Links found on a category page at depth
    `d` are queued at `d + 1`; display-page and pagination links of an album
    stay at the album's depth. Nothing deeper than `max_depth` is queued.
    Display-page links jump the queue so the images under an album are
    collected before the crawl fans out further.
    """

    def __init__(
        self,
        start_url: str,
        http_service: HttpService,
        max_depth: int = 3,
        on_progress: Optional[Callable[[CrawlState], None]] = None,
        delay_range: Tuple[float, float] = (0.5, 1.5),
        sleep: Callable[[float], None] = time.sleep,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        self.start_url = start_url
        self.http_service = http_service
        self.max_depth = max_depth
        self.on_progress = on_progress
        self.delay_range = delay_range
        self._sleep = sleep
        self.should_cancel = should_cancel
        self.state = CrawlState()
        self.state.enqueue(start_url, 0)

    def _cancelled(self) -> bool:
        return bool(self.should_cancel and self.should_cancel())

    def _enqueue_children(self, links: List[str], depth: int) -> None:
        if depth > self.max_depth:
            return
        for link in links:
            if not self.state.is_visited(link):
                self.state.enqueue(link, depth)

    def _handle_album(self, url: str, html: str, depth: int, images: List[GalleryImage], max_images: int) -> None:
        page = pages.parse_album_page(url, html)
        display = [link for link in page.display_links if not self.state.is_visited(link)]
        if display:
            self.state.enqueue_front(display, depth)
        elif not page.display_links:
            # Thumbnail guesses only when the album has no display pages at all.
            for full_url in page.image_urls:
                if len(images) >= max_images:
                    break
                if self.state.record_image(full_url):
                    images.append(GalleryImage(full_size_url=full_url, page_url=url))
        self._enqueue_children(page.pagination_links, depth)

    def _visit(self, url: str, depth: int, kind: str, images: List[GalleryImage], max_images: int) -> None:
        html = self.http_service.fetch_html(url)
        if kind == pages.IMAGE:
            image = pages.parse_image_page(url, html)
            if image is None:
                logger.debug("No full-size image on %s", url)
            elif self.state.record_image(image.full_size_url):
                images.append(image)
        elif kind == pages.ALBUM:
            self._handle_album(url, html, depth, images, max_images)
        else:
            page = pages.parse_category_page(url, html)
            self._enqueue_children(page.child_links, depth + 1)

    def crawl(self, max_images: int) -> List[GalleryImage]:
        images: List[GalleryImage] = []
        while self.state.has_pending() and len(images) < max_images:
            if self._cancelled():
                logger.info("Crawl of %s cancelled", self.start_url)
                break
            queued = self.state.next_page()
            if self.state.is_visited(queued.url):
                continue
            self.state.mark_visited(queued.url)
            kind = pages.classify_page(queued.url)

            try:
                self._visit(queued.url, queued.depth, kind, images, max_images)
            except HttpFetchError as e:
                logger.warning("Failed to fetch %s: %s", queued.url, e)
            except Exception:
                logger.exception("Error crawling %s", queued.url)

            self.state.count_page(kind == pages.IMAGE)
            if self.on_progress:
                self.on_progress(self.state)

            if self.state.has_pending() and len(images) < max_images:
                low, high = self.delay_range
                self._sleep(random.uniform(low, high))

        logger.info(
            "Crawl of %s finished: %s images, %s image pages, %s listing pages",
            self.start_url, len(images), self.state.pages_scanned, self.state.listing_pages,
        )
        return images[:max_images]


def extract_images_from_album(
    album_url: str,
    http_service: HttpService,
    max_images: int = 100,
    page_delay: float = 0.8,
    sleep: Callable[[float], None] = time.sleep,
) -> List[str]:
    """Walk an album's "next" links collecting thumbnail-derived full-size URLs.

    A lighter alternative to `GalleryCrawler` that never opens display pages.
    Stops at the first fetch error.
    """
    found: List[str] = []
    seen_pages = set()
    current: Optional[str] = album_url

    while current and len(found) < max_images:
        if current in seen_pages:
            break
        seen_pages.add(current)
        try:
            html = http_service.fetch_html(current)
        except HttpFetchError as e:
            logger.warning("Stopping album walk at %s: %s", current, e)
            break

        soup = BeautifulSoup(html, "html.parser")
        for link in soup.select('a[href*="displayimage.php"]'):
            img = link.find("img")
            if img is None or not img.get("src"):
                continue
            full = pages.thumbnail_to_full_size(urljoin(current, img.get("src")))
            if full not in found:
                found.append(full)
            if len(found) >= max_images:
                break

        next_url = None
        for link in soup.find_all("a", href=True):
            text = link.get_text(strip=True).lower()
            if "next" in text or text in NEXT_LINK_TEXTS:
                next_url = urljoin(current, link["href"])
                break
        current = next_url
        if current:
            sleep(page_delay)

    return found
