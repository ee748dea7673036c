from galleryharvest.services import gallery_pages as pages


def test_classify_page_by_url():
    assert pages.classify_page("http://g.com/index.php?cat=3") == pages.CATEGORY
    assert pages.classify_page("http://g.com/thumbnails.php?album=7&page=2") == pages.ALBUM
    assert pages.classify_page("http://g.com/displayimage.php?pid=11") == pages.IMAGE
    assert pages.classify_page("http://g.com/displayimage.php?pos=-4") == pages.IMAGE
    assert pages.classify_page("http://g.com/about.html") == pages.UNKNOWN


def test_thumbnail_rules():
    assert pages.thumbnail_to_full_size("http://g.com/albums/a/thumb_p.jpg") == "http://g.com/albums/a/p.jpg"
    assert pages.thumbnail_to_full_size("http://g.com/albums/thumb/p.jpg") == "http://g.com/albums/p.jpg"
    assert pages.thumbnail_to_full_size("http://g.com/albums/tn_p.jpg") == "http://g.com/albums/p.jpg"
    assert pages.thumbnail_to_full_size("http://g.com/albums/p_thumb.JPG") == "http://g.com/albums/p.JPG"
    assert pages.thumbnail_to_full_size("http://g.com/albums/p-thumb.png") == "http://g.com/albums/p.png"
    assert pages.thumbnail_to_full_size("http://g.com/albums/p_t.jpg") == "http://g.com/albums/p.jpg"


def test_thumbnail_rule_applied_once_and_unknown_unchanged():
    assert pages.thumbnail_to_full_size("http://g.com/thumb/thumb_p.jpg") == "http://g.com/thumb/p.jpg"
    assert pages.thumbnail_to_full_size("http://g.com/albums/p.jpg") == "http://g.com/albums/p.jpg"


def test_full_size_heuristics():
    assert pages.is_likely_full_size_image("/albums/x/photo.jpg")
    assert not pages.is_likely_full_size_image("/albums/x/thumb_photo.jpg")
    assert not pages.is_likely_full_size_image("/albums/x/normal_photo.jpg")
    assert not pages.is_likely_full_size_image("images/photo.jpg")
    assert pages.intermediate_to_full_size("albums/x/normal_photo.jpg") == "albums/x/photo.jpg"


def test_category_page_lists_categories_then_albums():
    html = """
    <html><head><title>Events</title></head><body>
      <a href="index.php?cat=0">Home</a>
      <a href="index.php?cat=4">Premieres</a>
      <a href="thumbnails.php?album=9">Red carpet</a>
      <a href="index.php?cat=4">Premieres again</a>
      <a href="thumbnails.php?album=10">Interviews</a>
    </body></html>
    """
    page = pages.parse_category_page("http://g.com/index.php?cat=2", html)

    assert page.kind == pages.CATEGORY
    assert page.title == "Events"
    assert page.child_links == [
        "http://g.com/index.php?cat=4",
        "http://g.com/thumbnails.php?album=9",
        "http://g.com/thumbnails.php?album=10",
    ]
    assert page.display_links == ()
    assert page.image_urls == ()


def test_album_page_pagination_only_forward_in_same_album():
    html = """
    <body>
      <a href="displayimage.php?pid=1"><img src="albums/a/thumb_1.jpg"></a>
      <a href="displayimage.php?pid=2"><img src="albums/a/thumb_2.jpg"></a>
      <a href="thumbnails.php?album=5&page=1">1</a>
      <a href="thumbnails.php?album=5&page=3">3</a>
      <a href="thumbnails.php?album=6&page=3">other</a>
    </body>
    """
    page = pages.parse_album_page("http://g.com/thumbnails.php?album=5&page=2", html)

    assert page.display_links == [
        "http://g.com/displayimage.php?pid=1",
        "http://g.com/displayimage.php?pid=2",
    ]
    assert page.pagination_links == ["http://g.com/thumbnails.php?album=5&page=3"]
    assert page.image_urls == ["http://g.com/albums/a/1.jpg", "http://g.com/albums/a/2.jpg"]


def test_image_page_prefers_display_element_and_reads_dimensions():
    html = """
    <html><head><title>Photo 12</title></head><body>
      <img src="albums/a/other.jpg">
      <img id="cpgimage" src="albums/a/big.jpg">
      <p>1600 x 1200 pixels</p>
    </body></html>
    """
    image = pages.parse_image_page("http://g.com/displayimage.php?pid=12", html)

    assert image.full_size_url == "http://g.com/albums/a/big.jpg"
    assert image.page_url == "http://g.com/displayimage.php?pid=12"
    assert image.title == "Photo 12"
    assert (image.width, image.height) == (1600, 1200)


def test_image_page_falls_back_to_album_file_link():
    html = '<body><a href="/albums/a/big.jpeg">full size</a><img src="albums/a/normal_big.jpg"></body>'
    image = pages.parse_image_page("http://g.com/displayimage.php?pid=1", html)
    assert image.full_size_url == "http://g.com/albums/a/big.jpeg"
    assert image.width is None


def test_image_page_falls_back_to_full_size_img():
    html = '<body><img src="images/logo.gif"><img src="/albums/a/thumb_x.jpg"><img src="/albums/a/x.png"></body>'
    image = pages.parse_image_page("http://g.com/displayimage.php?pid=1", html)
    assert image.full_size_url == "http://g.com/albums/a/x.png"


def test_image_page_strips_intermediate_prefix():
    html = '<body><img src="albums/a/normal_x.jpg"></body>'
    image = pages.parse_image_page("http://g.com/displayimage.php?pid=1", html)
    assert image.full_size_url == "http://g.com/albums/a/x.jpg"


def test_image_page_falls_back_to_any_valid_image():
    html = '<body><img src="images/logo.png"><img src="http://cdn.g.com/photo.jpg"></body>'
    image = pages.parse_image_page("http://g.com/displayimage.php?pid=1", html)
    assert image.full_size_url == "http://cdn.g.com/photo.jpg"


def test_image_page_without_candidates_returns_none():
    html = '<body><img src="images/logo.png"><p>nothing here</p></body>'
    assert pages.parse_image_page("http://g.com/displayimage.php?pid=1", html) is None


def test_page_number():
    assert pages.get_page_number("http://g.com/thumbnails.php?album=5&page=12") == 12
    assert pages.get_page_number("http://g.com/thumbnails.php?album=5") == 0


def test_listing_page_defaults_are_not_shared_lists():
    first = pages.ListingPage("http://g.com/index.php?cat=1", pages.CATEGORY)
    second = pages.ListingPage("http://g.com/index.php?cat=2", pages.CATEGORY)
    for name in ("child_links", "display_links", "pagination_links", "image_urls"):
        assert getattr(first, name) == ()
        assert not hasattr(getattr(first, name), "append")
        assert getattr(second, name) == ()
