from unittest.mock import MagicMock

from galleryharvest.exceptions import HttpFetchError
from galleryharvest.services.gallery_crawler import GalleryCrawler, extract_images_from_album

BASE = "http://g.com"
CATEGORY_URL = f"{BASE}/index.php?cat=1"


def _category(*album_ids):
    links = "".join(f'<a href="thumbnails.php?album={a}">Album {a}</a>' for a in album_ids)
    return f'<html><body><a href="index.php?cat=0">Home</a>{links}</body></html>'


def _album(album_id, pids, extra=""):
    links = "".join(
        f'<a href="displayimage.php?pid={p}"><img src="albums/a{album_id}/thumb_p{p}.jpg"></a>' for p in pids
    )
    return f"<html><body>{links}{extra}</body></html>"


def _display(album_id, pid):
    return f'<html><body><img id="cpgimage" src="albums/a{album_id}/p{pid}.jpg"><p>1024 x 768</p></body></html>'


def _site():
    pages = {
        CATEGORY_URL: _category(1, 2),
        f"{BASE}/thumbnails.php?album=1": _album(1, [11, 12, 13]),
        f"{BASE}/thumbnails.php?album=2": _album(2, [21, 22, 23]),
    }
    for album_id, pids in ((1, [11, 12, 13]), (2, [21, 22, 23])):
        for pid in pids:
            pages[f"{BASE}/displayimage.php?pid={pid}"] = _display(album_id, pid)
    return pages


def _http(pages, failing=()):
    http = MagicMock()
    fetched = []

    def fetch_html(url):
        fetched.append(url)
        if url in failing or url not in pages:
            raise HttpFetchError(url, RuntimeError("status 404"))
        return pages[url]

    http.fetch_html.side_effect = fetch_html
    http.fetched = fetched
    return http


def _crawler(http, **kwargs):
    kwargs.setdefault("sleep", lambda s: None)
    return GalleryCrawler(CATEGORY_URL, http, **kwargs)


def test_three_level_gallery_yields_every_image():
    crawler = _crawler(_http(_site()))

    images = crawler.crawl(max_images=100)

    assert len(images) == 6
    assert images[0].full_size_url == f"{BASE}/albums/a1/p11.jpg"
    assert images[0].width == 1024
    assert crawler.state.pages_scanned == 6
    assert crawler.state.listing_pages == 3
    assert crawler.state.images_found == 6


def test_display_pages_are_visited_before_next_album():
    http = _http(_site())
    _crawler(http).crawl(max_images=100)

    assert http.fetched[:5] == [
        CATEGORY_URL,
        f"{BASE}/thumbnails.php?album=1",
        f"{BASE}/displayimage.php?pid=11",
        f"{BASE}/displayimage.php?pid=12",
        f"{BASE}/displayimage.php?pid=13",
    ]


def test_max_depth_stops_below_entry():
    http = _http(_site())
    crawler = _crawler(http, max_depth=0)

    assert crawler.crawl(max_images=100) == []
    assert http.fetched == [CATEGORY_URL]


def test_stops_at_max_images():
    crawler = _crawler(_http(_site()))
    images = crawler.crawl(max_images=2)
    assert len(images) == 2


def test_thumbnails_used_only_without_display_links():
    pages = {
        CATEGORY_URL: _category(3),
        f"{BASE}/thumbnails.php?album=3": '<body><img class="thumbnail" src="albums/a3/thumb_x.jpg"></body>',
    }
    images = _crawler(_http(pages)).crawl(max_images=10)
    assert [i.full_size_url for i in images] == [f"{BASE}/albums/a3/x.jpg"]


def test_album_pagination_is_followed():
    pages = _site()
    pages[f"{BASE}/thumbnails.php?album=1"] = _album(
        1, [11], extra='<a href="thumbnails.php?album=1&page=2">2</a>'
    )
    pages[f"{BASE}/thumbnails.php?album=1&page=2"] = _album(1, [12])
    pages[CATEGORY_URL] = _category(1)

    images = _crawler(_http(pages)).crawl(max_images=10)

    assert [i.full_size_url for i in images] == [f"{BASE}/albums/a1/p11.jpg", f"{BASE}/albums/a1/p12.jpg"]


def test_fetch_error_skips_page_and_continues():
    http = _http(_site(), failing={f"{BASE}/displayimage.php?pid=12"})
    crawler = _crawler(http)

    images = crawler.crawl(max_images=100)

    assert len(images) == 5
    assert crawler.state.pages_scanned == 6


def test_progress_reported_per_page():
    seen = []
    crawler = _crawler(_http(_site()), on_progress=lambda state: seen.append(state.pages_scanned))
    crawler.crawl(max_images=100)
    assert len(seen) == 9
    assert seen[-1] == 6


def test_cancel_stops_crawl():
    http = _http(_site())
    crawler = _crawler(http, should_cancel=lambda: len(http.fetched) >= 2)

    images = crawler.crawl(max_images=100)

    assert images == []
    assert len(http.fetched) == 2


def test_extract_images_from_album_follows_next_links():
    first = f"{BASE}/thumbnails.php?album=1"
    second = f"{BASE}/thumbnails.php?album=1&page=2"
    pages = {
        first: _album(1, [11, 12], extra='<a href="thumbnails.php?album=1&page=2">Next</a>'),
        second: _album(1, [13]),
    }
    sleep = MagicMock()

    urls = extract_images_from_album(first, _http(pages), sleep=sleep)

    assert urls == [
        f"{BASE}/albums/a1/p11.jpg",
        f"{BASE}/albums/a1/p12.jpg",
        f"{BASE}/albums/a1/p13.jpg",
    ]
    sleep.assert_called_once_with(0.8)


def test_extract_images_from_album_stops_on_fetch_error():
    assert extract_images_from_album(f"{BASE}/thumbnails.php?album=404", _http({})) == []
