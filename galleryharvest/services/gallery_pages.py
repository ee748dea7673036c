"""Parsers for the three page kinds of the supported gallery engine.

Page kind is decided from the URL alone. Parsers never raise on missing
content; they return empty link lists or `None`.
"""
import re
from typing import List, NamedTuple, Optional, Sequence
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from galleryharvest.domain import GalleryImage
from galleryharvest.services.gallery_fingerprint import (
    ALBUM_LINK_SELECTOR,
    CATEGORY_LINK_SELECTOR,
    DISPLAY_LINK_SELECTOR,
)
from galleryharvest.services.image_downloader import is_valid_image_url

CATEGORY = "category"
ALBUM = "album"
IMAGE = "image"
UNKNOWN = "unknown"

DISPLAY_ELEMENT_SELECTOR = "#cpgimage, img.image, img.photo, .display img, #fullsize-image, .main-image img"
ALBUM_FILE_LINK_SELECTOR = (
    'a[href*="/albums/"][href$=".jpg"], a[href*="/albums/"][href$=".jpeg"], a[href*="/albums/"][href$=".png"]'
)
THUMBNAIL_IMG_SELECTOR = 'img.thumbnail, img[src*="thumb_"], img[src*="/thumb/"], img[src*="tn_"], .thumbnails img'

# Ordered; the first matching rule is applied once.
THUMBNAIL_RULES = [
    (re.compile(r"thumb_"), ""),
    (re.compile(r"/thumb/"), "/"),
    (re.compile(r"/tn_"), "/"),
    (re.compile(r"_thumb(\.\w+)$", re.I), r"\1"),
    (re.compile(r"-thumb(\.\w+)$", re.I), r"\1"),
    (re.compile(r"_t(\.\w+)$", re.I), r"\1"),
]

DIMENSIONS_RE = re.compile(r"(\d{3,4})\s*[xX×]\s*(\d{3,4})")
PAGE_NUMBER_RE = re.compile(r"page=(\d+)")
FULL_SIZE_EXTENSIONS = (".jpg", ".jpeg", ".png")


class ListingPage(NamedTuple):
    url: str
    kind: str
    title: str = ""
    child_links: Sequence[str] = ()
    display_links: Sequence[str] = ()
    pagination_links: Sequence[str] = ()
    image_urls: Sequence[str] = ()


def classify_page(url: str) -> str:
    if "index.php?cat=" in url:
        return CATEGORY
    if "thumbnails.php?album=" in url:
        return ALBUM
    if "displayimage.php?pid=" in url or "displayimage.php?pos=" in url:
        return IMAGE
    return UNKNOWN


def resolve_url(href: str, base_url: str) -> str:
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href


def get_page_number(url: str) -> int:
    m = PAGE_NUMBER_RE.search(url)
    return int(m.group(1)) if m else 0


def _album_id(url: str) -> Optional[str]:
    try:
        values = parse_qs(urlparse(url).query).get("album")
    except ValueError:
        return None
    return values[0] if values else None


def thumbnail_to_full_size(url: str) -> str:
    """Map a thumbnail URL to its full-size sibling.

    Unrecognised URLs are returned unchanged; downloading them as-is beats
    dropping them.
    """
    for pattern, replacement in THUMBNAIL_RULES:
        if pattern.search(url):
            return pattern.sub(replacement, url, count=1)
    return url


def intermediate_to_full_size(url: str) -> str:
    return url.replace("normal_", "")


def is_likely_full_size_image(src: str) -> bool:
    lower = src.lower()
    if "thumb_" in lower or "/thumb/" in lower or "_thumb" in lower:
        return False
    if "normal_" in lower or "/normal/" in lower:
        return False
    return "/albums/" in lower and lower.endswith(FULL_SIZE_EXTENSIONS)


def _page_title(soup: BeautifulSoup, fallback_selector: str = "h1") -> str:
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(strip=True)
    el = soup.select_one(fallback_selector)
    return el.get_text(strip=True) if el else ""


def _unique_hrefs(soup: BeautifulSoup, selector: str, base_url: str, attr: str = "href") -> List[str]:
    out: List[str] = []
    for el in soup.select(selector):
        value = el.get(attr)
        if not value:
            continue
        full = resolve_url(value, base_url)
        if full not in out:
            out.append(full)
    return out


def parse_category_page(url: str, html: str) -> ListingPage:
    """Sub-category links (the root listing `cat=0` excluded) followed by album links."""
    soup = BeautifulSoup(html, "html.parser")
    links = [u for u in _unique_hrefs(soup, CATEGORY_LINK_SELECTOR, url) if "cat=0" not in u]
    for album in _unique_hrefs(soup, ALBUM_LINK_SELECTOR, url):
        if album not in links:
            links.append(album)
    return ListingPage(url, CATEGORY, _page_title(soup), child_links=links)


def parse_album_page(url: str, html: str) -> ListingPage:
    soup = BeautifulSoup(html, "html.parser")
    display_links = _unique_hrefs(soup, DISPLAY_LINK_SELECTOR, url)

    current_album = _album_id(url)
    current_page = get_page_number(url)
    pagination = []
    for link in _unique_hrefs(soup, ALBUM_LINK_SELECTOR, url):
        if link == url or _album_id(link) != current_album:
            continue
        if get_page_number(link) > current_page:
            pagination.append(link)

    image_urls = []
    for thumb in _unique_hrefs(soup, THUMBNAIL_IMG_SELECTOR, url, attr="src"):
        full = thumbnail_to_full_size(thumb)
        if full not in image_urls:
            image_urls.append(full)

    return ListingPage(
        url,
        ALBUM,
        _page_title(soup),
        display_links=display_links,
        pagination_links=pagination,
        image_urls=image_urls,
    )


def _find_full_size_src(soup: BeautifulSoup, url: str) -> Optional[str]:
    main = soup.select_one(DISPLAY_ELEMENT_SELECTOR)
    if main is not None and main.get("src"):
        return main.get("src")

    link = soup.select_one(ALBUM_FILE_LINK_SELECTOR)
    if link is not None and link.get("href"):
        return link.get("href")

    images = [img.get("src") for img in soup.find_all("img") if img.get("src")]
    for src in images:
        if is_likely_full_size_image(src):
            return src

    for src in images:
        if "normal_" in src:
            return intermediate_to_full_size(src)

    for src in images:
        if is_valid_image_url(resolve_url(src, url)):
            return src
    return None


def parse_image_page(url: str, html: str) -> Optional[GalleryImage]:
    """Return the display page's full-size image, or None when nothing qualifies."""
    soup = BeautifulSoup(html, "html.parser")
    src = _find_full_size_src(soup, url)
    if not src:
        return None

    width = height = None
    body = soup.body or soup
    m = DIMENSIONS_RE.search(body.get_text(" "))
    if m:
        width, height = int(m.group(1)), int(m.group(2))

    return GalleryImage(
        full_size_url=resolve_url(src, url),
        page_url=url,
        title=_page_title(soup, ".image-title") or None,
        width=width,
        height=height,
    )
