import logging
import math
import random
import time
from typing import Callable, List, NamedTuple, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from galleryharvest.domain import FanSite, GalleryType, WebSearchResult
from galleryharvest.exceptions import HttpFetchError, SearchApiError
from galleryharvest.services import gallery_fingerprint as fp
from galleryharvest.services.http_service import HttpService
from galleryharvest.services.protocols import SearchClient

logger = logging.getLogger(__name__)

QUERY_TEMPLATES = [
    '"{name}" fan site gallery pictures',
    '"{name}" photo gallery thumbnails',
    '"{name}" pictures archive high resolution',
    'site:*pictures.net "{name}"',
    '"{name}" coppermine gallery',
]

UNKNOWN_CONFIDENCE = 0.1
MIN_UNKNOWN_CONFIDENCE = 0.3
# Rejected credentials fail every query; surface them instead of returning no sites.
AUTH_FAILURE_STATUSES = (401, 403)


class GalleryDetection(NamedTuple):
    is_known_engine: bool
    confidence: float
    category_url: Optional[str] = None
    indicators: Tuple[str, ...] = ()


class SiteDetector:
    """Finds candidate gallery sites for a subject and fingerprints them.

    Search results are ranked by `gallery_fingerprint.calculate_url_priority`;
    only the best `2 * max_sites` candidates are probed over the network.
    """

    def __init__(
        self,
        search_client: SearchClient,
        http_service: HttpService,
        *,
        query_limit: int = 2,
        query_delay: float = 0.5,
        delay_range: Tuple[float, float] = (0.5, 1.5),
        probe_timeout: float = 10,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.search_client = search_client
        self.http_service = http_service
        self.query_limit = query_limit
        self.query_delay = query_delay
        self.delay_range = delay_range
        self.probe_timeout = probe_timeout
        self._sleep = sleep

    def build_queries(self, subject_name: str) -> List[str]:
        return [t.format(name=subject_name) for t in QUERY_TEMPLATES[: self.query_limit]]

    def search_for_fan_sites(self, subject_name: str, api_key: str, count: int = 30) -> List[WebSearchResult]:
        """Run the query templates and merge their results, first URL wins.

        A failing query is logged and skipped; the others still run.
        """
        per_query = math.ceil(count / 2)
        results: List[WebSearchResult] = []
        seen = set()
        for query in self.build_queries(subject_name):
            try:
                hits = self.search_client.search(query, api_key, count=per_query)
            except SearchApiError as e:
                if e.status_code in AUTH_FAILURE_STATUSES:
                    raise
                logger.error("Search failed for query %r: %s", query, e)
                continue
            except Exception as e:
                logger.error("Search failed for query %r: %s", query, e)
                continue
            for hit in hits:
                if hit.url in seen:
                    continue
                seen.add(hit.url)
                results.append(hit)
            self._sleep(self.query_delay)
        return results

    def detect_gallery(self, url: str) -> GalleryDetection:
        try:
            response = self.http_service.fetch(url, timeout=self.probe_timeout)
        except HttpFetchError as e:
            logger.warning("Probe failed for %s: %s", url, e)
            return GalleryDetection(False, 0.0)
        if not response.ok:
            logger.info("Probe of %s returned status %s", url, response.status_code)
            return GalleryDetection(False, 0.0)

        html = response.text or ""
        soup = BeautifulSoup(html, "html.parser")
        fingerprint = fp.fingerprint_page(html, soup)
        category_url = None
        if fingerprint.is_known_engine:
            category_url = fp.resolve_entry_url(soup, url)
            logger.debug("Resolved entry URL for %s -> %s", url, category_url)
        return GalleryDetection(
            fingerprint.is_known_engine,
            fingerprint.confidence,
            category_url,
            tuple(fingerprint.indicators),
        )

    def detect_site_type(self, url: str) -> FanSite:
        try:
            domain = urlparse(url).hostname or ""
        except ValueError:
            domain = ""
        if not domain:
            return FanSite(url=url, domain=domain, gallery_type=GalleryType.UNKNOWN, confidence=0.0)

        try:
            detection = self.detect_gallery(url)
        except Exception:
            logger.exception("Error detecting site type for %s", url)
            return FanSite(url=url, domain=domain, gallery_type=GalleryType.UNKNOWN, confidence=0.0)

        if detection.is_known_engine:
            return FanSite(
                url=url,
                domain=domain,
                gallery_type=GalleryType.COPPERMINE,
                confidence=detection.confidence,
                category_url=detection.category_url,
            )
        return FanSite(url=url, domain=domain, gallery_type=GalleryType.UNKNOWN, confidence=UNKNOWN_CONFIDENCE)

    def _politeness_delay(self) -> None:
        low, high = self.delay_range
        self._sleep(random.uniform(low, high))

    def discover_fan_sites(self, subject_name: str, api_key: str, max_sites: int = 5) -> List[FanSite]:
        """Return up to `max_sites` fingerprinted sites, one per domain, best first."""
        results = self.search_for_fan_sites(subject_name, api_key, count=30)
        candidates = fp.rank_candidates(results, limit=max_sites * 2)
        logger.info("Probing %s of %s search results for %r", len(candidates), len(results), subject_name)

        sites: List[FanSite] = []
        domains = set()
        for priority, result in candidates:
            if len(sites) >= max_sites:
                break
            site = self.detect_site_type(result.url)
            if site.is_known_engine or site.confidence > MIN_UNKNOWN_CONFIDENCE:
                if site.domain not in domains:
                    domains.add(site.domain)
                    sites.append(site)
                    logger.info(
                        "Site %s: type=%s confidence=%.2f priority=%s",
                        site.url, site.gallery_type.value, site.confidence, priority,
                    )
            self._politeness_delay()

        return sorted(sites, key=lambda s: s.confidence, reverse=True)
