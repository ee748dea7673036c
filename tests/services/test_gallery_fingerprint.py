from bs4 import BeautifulSoup

from galleryharvest.domain import WebSearchResult
from galleryharvest.services import gallery_fingerprint as fp


def _soup(html):
    return BeautifulSoup(html, "html.parser")


def test_url_priority_adds_up_signals():
    assert fp.calculate_url_priority("http://x-pictures.com/gallery/index.php?cat=2", "Gallery") == 11
    assert fp.calculate_url_priority("http://news.example.org/story") == 0
    assert fp.calculate_url_priority("http://news.example.org/story", "HQ photos") == 2


def test_fingerprint_counts_markers_and_links():
    html = '<html><body>Coppermine Photo Gallery <a href="thumbnails.php?album=1">a</a></body></html>'
    result = fp.fingerprint_page(html)

    assert result.score == 5
    assert "Coppermine Photo Gallery" in result.indicators
    assert result.is_known_engine
    assert result.confidence == 5 / 6


def test_plain_page_is_not_known_engine():
    result = fp.fingerprint_page("<html><body><p>Hello</p></body></html>")
    assert result.score == 0
    assert not result.is_known_engine
    assert result.confidence == 0


def test_confidence_is_capped():
    html = " ".join(fp.ENGINE_MARKERS) + '<a href="index.php?cat=2">c</a>'
    assert fp.fingerprint_page(html).confidence == 1.0


def test_entry_url_prefers_album_link():
    soup = _soup('<a href="index.php?cat=2">c</a><a href="thumbnails.php?album=4">a</a>')
    assert fp.resolve_entry_url(soup, "http://x.com/gallery/") == "http://x.com/gallery/thumbnails.php?album=4"


def test_entry_url_uses_category_link():
    soup = _soup('<a href="/gallery/index.php?cat=2">c</a>')
    assert fp.resolve_entry_url(soup, "http://x.com/") == "http://x.com/gallery/index.php?cat=2"


def test_entry_url_inferred_from_display_link_base_path():
    soup = _soup('<a href="/pics/displayimage.php?pid=4">p</a>')
    assert fp.resolve_entry_url(soup, "http://x.com/") == "http://x.com/pics/index.php?cat=0"


def test_entry_url_defaults_to_site_root_listing():
    assert fp.resolve_entry_url(_soup("<p>nothing</p>"), "http://x.com/a/b") == "http://x.com/index.php?cat=0"


def test_rank_candidates_limits_and_keeps_ties_in_order():
    results = [
        WebSearchResult("http://a.com/one"),
        WebSearchResult("http://b-gallery.com/gallery/"),
        WebSearchResult("http://c.com/two"),
    ]
    ranked = fp.rank_candidates(results, limit=2)
    assert [r.url for _, r in ranked] == ["http://b-gallery.com/gallery/", "http://a.com/one"]
