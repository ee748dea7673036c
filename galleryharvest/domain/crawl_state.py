from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, NamedTuple, Optional, Set


class QueuedPage(NamedTuple):
    url: str
    depth: int


@dataclass
class CrawlState:
    """Mutable traversal state for one site's crawl.

    Owned by a single `GalleryCrawler.crawl()` run and discarded afterwards.
    """

    visited_urls: Set[str] = field(default_factory=set)
    pending_queue: Deque[QueuedPage] = field(default_factory=deque)
    found_image_urls: List[str] = field(default_factory=list)
    # Image display pages parsed for a full-size URL.
    pages_scanned: int = 0
    listing_pages: int = 0

    def enqueue(self, url: str, depth: int) -> None:
        self.pending_queue.append(QueuedPage(url, depth))

    def enqueue_front(self, urls: List[str], depth: int) -> None:
        # Keep document order among the prioritized links.
        for url in reversed(urls):
            self.pending_queue.appendleft(QueuedPage(url, depth))

    def next_page(self) -> Optional[QueuedPage]:
        if not self.pending_queue:
            return None
        return self.pending_queue.popleft()

    def has_pending(self) -> bool:
        return bool(self.pending_queue)

    def mark_visited(self, url: str) -> None:
        self.visited_urls.add(url)

    def is_visited(self, url: str) -> bool:
        return url in self.visited_urls

    def count_page(self, is_image_page: bool) -> None:
        if is_image_page:
            self.pages_scanned += 1
        else:
            self.listing_pages += 1

    def record_image(self, url: str) -> bool:
        """Record a found full-size URL. Returns False if already recorded."""
        if url in self.found_image_urls:
            return False
        self.found_image_urls.append(url)
        return True

    @property
    def images_found(self) -> int:
        return len(self.found_image_urls)
