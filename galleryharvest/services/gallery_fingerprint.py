"""Named heuristics used to rank search results and fingerprint gallery sites.

Each rule is a small standalone function so new fingerprint rules can be
added without touching the detector or the crawler.
"""
import re
from typing import List, NamedTuple, Optional, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

FAN_SITE_DOMAIN_PATTERNS = [
    re.compile(r"pictures?\.(com|net|org)", re.I),
    re.compile(r"gallery\.(com|net|org)", re.I),
    re.compile(r"photos?\.(com|net|org)", re.I),
    re.compile(r"images?\.(com|net|org)", re.I),
    re.compile(r"pics\.(com|net|org)", re.I),
    re.compile(r"-pictures?\.com", re.I),
    re.compile(r"-gallery\.com", re.I),
    re.compile(r"-photos?\.com", re.I),
]

GALLERY_PATH_PATTERNS = [
    re.compile(r"/gallery/", re.I),
    re.compile(r"/photos?/", re.I),
    re.compile(r"/pictures?/", re.I),
    re.compile(r"/images?/", re.I),
    re.compile(r"/albums?/", re.I),
]

# Marker strings found in pages served by the known gallery engine.
ENGINE_MARKERS = [
    "index.php?cat=",
    "thumbnails.php?album=",
    "displayimage.php?pid=",
    "coppermine",
    "Coppermine Photo Gallery",
    "cpg_user_message",
    'class="tableb"',
    'class="navmenu"',
]

CATEGORY_LINK_SELECTOR = 'a[href*="index.php?cat="]'
ALBUM_LINK_SELECTOR = 'a[href*="thumbnails.php?album="]'
DISPLAY_LINK_SELECTOR = 'a[href*="displayimage.php?pid="], a[href*="displayimage.php?pos="]'
ENGINE_LINK_SELECTOR = ", ".join([CATEGORY_LINK_SELECTOR, ALBUM_LINK_SELECTOR, DISPLAY_LINK_SELECTOR])

ENGINE_LINK_BONUS = 3
KNOWN_ENGINE_MIN_SCORE = 2
CONFIDENCE_SCALE = 6

DEFAULT_ENTRY_PATH = "/index.php?cat=0"


class Fingerprint(NamedTuple):
    score: int
    indicators: List[str]

    @property
    def is_known_engine(self) -> bool:
        return self.score >= KNOWN_ENGINE_MIN_SCORE

    @property
    def confidence(self) -> float:
        return min(self.score / CONFIDENCE_SCALE, 1.0)


def _hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_fan_site_domain(url: str) -> bool:
    domain = _hostname(url)
    return any(p.search(domain) for p in FAN_SITE_DOMAIN_PATTERNS)


def has_gallery_path(url: str) -> bool:
    try:
        path = urlparse(url).path.lower()
    except ValueError:
        return False
    return any(p.search(path) for p in GALLERY_PATH_PATTERNS)


def keyword_bonus(title: str, description: str) -> int:
    text = f"{title} {description}".lower()
    bonus = 0
    if "gallery" in text:
        bonus += 2
    if "pictures" in text:
        bonus += 1
    if "photos" in text:
        bonus += 1
    if "high quality" in text:
        bonus += 2
    if "hq" in text:
        bonus += 1
    return bonus


def calculate_url_priority(url: str, title: str = "", description: str = "") -> int:
    """Score a search result; higher means probe it earlier."""
    priority = 0
    if is_fan_site_domain(url):
        priority += 3
    if has_gallery_path(url):
        priority += 2
    if "index.php?cat=" in url:
        priority += 4
    if "thumbnails.php" in url:
        priority += 3
    return priority + keyword_bonus(title, description)


def score_markers(html: str) -> Fingerprint:
    found = [m for m in ENGINE_MARKERS if m in html]
    return Fingerprint(len(found), found)


def count_engine_links(soup: BeautifulSoup) -> int:
    return len(soup.select(ENGINE_LINK_SELECTOR))


def fingerprint_page(html: str, soup: Optional[BeautifulSoup] = None) -> Fingerprint:
    soup = soup if soup is not None else BeautifulSoup(html, "html.parser")
    markers = score_markers(html)
    score = markers.score
    indicators = list(markers.indicators)
    link_count = count_engine_links(soup)
    if link_count > 0:
        score += ENGINE_LINK_BONUS
        indicators.append(f"Found {link_count} engine-style links")
    return Fingerprint(score, indicators)


def _first_href(soup: BeautifulSoup, selector: str) -> Optional[str]:
    link = soup.select_one(selector)
    if link is None:
        return None
    return link.get("href") or None


def _script_base_path(url: str, script: str) -> Optional[str]:
    m = re.match(rf"^(.*)/{re.escape(script)}$", urlparse(url).path)
    return m.group(1) if m else None


def resolve_entry_url(soup: BeautifulSoup, page_url: str) -> str:
    """Pick the crawl entry point for a known-engine site.

    Album links are the most specific and win outright; then the first
    category link; then a root listing under the gallery's base path
    inferred from a display link; finally the site-root listing.
    """
    album_href = _first_href(soup, ALBUM_LINK_SELECTOR)
    if album_href:
        return urljoin(page_url, album_href)

    category_href = _first_href(soup, CATEGORY_LINK_SELECTOR)
    if category_href:
        return urljoin(page_url, category_href)

    display_href = _first_href(soup, 'a[href*="displayimage.php"]')
    if display_href:
        base_path = _script_base_path(urljoin(page_url, display_href), "displayimage.php")
        if base_path is not None:
            return urljoin(page_url, f"{base_path}{DEFAULT_ENTRY_PATH}")

    return urljoin(page_url, DEFAULT_ENTRY_PATH)


def rank_candidates(results, limit: int) -> List[Tuple[int, object]]:
    """Return the top `limit` results as (priority, result), best first.

    Ties keep search-engine order.
    """
    scored = [(calculate_url_priority(r.url, r.title, r.description), r) for r in results]
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return scored[:limit]
