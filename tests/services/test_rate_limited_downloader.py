import random
from unittest.mock import Mock

from galleryharvest.domain import DownloadOptions
from galleryharvest.services.image_downloader import RateLimitedDownloader, download_with_deduplication


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def _response(content=b"", status=200, reason="OK"):
    resp = Mock()
    resp.status_code = status
    resp.text = ""
    resp.reason = reason
    resp.headers = {"Content-Type": "image/jpeg"}
    resp.iter_content.return_value = [content]
    return resp


def _ok_response(content):
    return _response(content)


def _downloader(clock, http_client, min_delay=0.3, max_delay=1.5, seed=7):
    return RateLimitedDownloader(
        min_delay=min_delay,
        max_delay=max_delay,
        http_client=http_client,
        clock=clock,
        sleep=clock.sleep,
        rng=random.Random(seed).uniform,
    )


def test_requests_never_closer_than_min_delay(make_image):
    clock = FakeClock()
    content = make_image()
    started = []

    def http_client(url, headers=None, timeout=None, stream=False):
        started.append(clock.now)
        clock.now += 0.05  # simulated transfer time
        return _ok_response(content)

    downloader = _downloader(clock, http_client)
    for i in range(12):
        assert downloader.download(f"http://x.com/{i}.jpg").success

    gaps = [b - a for a, b in zip(started, started[1:])]
    assert len(gaps) == 11
    assert min(gaps) >= 0.3 - 1e-9


def test_slow_transfers_are_not_delayed_further(make_image):
    clock = FakeClock()
    content = make_image()

    def http_client(url, headers=None, timeout=None, stream=False):
        clock.now += 5.0
        return _ok_response(content)

    downloader = _downloader(clock, http_client)
    downloader.download("http://x.com/1.jpg")
    before = clock.now
    downloader.download("http://x.com/2.jpg")
    # only the 5s transfer elapsed; no extra politeness sleep was needed
    assert clock.now - before == 5.0


def test_cancelled_download_does_no_io():
    clock = FakeClock()
    http_client = Mock()
    downloader = _downloader(clock, http_client)

    result = downloader.download("http://x.com/a.jpg", should_cancel=lambda: True)

    assert result.cancelled
    http_client.assert_not_called()


def test_batch_drops_exact_duplicates_across_calls(make_image):
    clock = FakeClock()
    a, b = make_image(variant=0), make_image(variant=1)
    bodies = {"http://x.com/1.jpg": a, "http://x.com/2.jpg": a, "http://x.com/3.jpg": b}
    http_client = Mock(side_effect=lambda url, headers=None, timeout=None, stream=False: _ok_response(bodies[url]))
    seen = set()
    progress = []

    outcome = download_with_deduplication(
        list(bodies),
        seen,
        _downloader(clock, http_client),
        DownloadOptions(),
        on_progress=lambda done, total, item: progress.append((done, total, item.is_exact_duplicate)),
    )

    assert len(outcome.new_images) == 2
    assert outcome.duplicate_count == 1
    assert not outcome.cancelled
    assert len(seen) == 2
    assert progress == [(1, 3, False), (2, 3, True), (3, 3, False)]


def test_batch_drains_remaining_urls_after_cancel(make_image):
    clock = FakeClock()
    content = make_image()
    http_client = Mock(return_value=_ok_response(content))

    def should_cancel():
        return http_client.call_count >= 1

    outcome = download_with_deduplication(
        ["http://x.com/1.jpg", "http://x.com/2.jpg", "http://x.com/3.jpg"],
        set(),
        _downloader(clock, http_client),
        should_cancel=should_cancel,
    )

    assert outcome.cancelled
    assert http_client.call_count == 1
    assert [r.result.cancelled for r in outcome.results] == [False, True, True]
    assert len(outcome.new_images) == 1


def test_retries_wait_for_their_rate_limit_turn(make_image):
    clock = FakeClock()
    content = make_image()
    replies = [_response(status=500, reason="Internal Server Error"), _ok_response(content)]
    started = []

    def http_client(url, headers=None, timeout=None, stream=False):
        started.append(clock.now)
        return replies.pop(0)

    downloader = _downloader(clock, http_client, min_delay=2.0, max_delay=3.0)
    result = downloader.download("http://x.com/a.jpg", DownloadOptions(retries=2))

    assert result.success
    gaps = [b - a for a, b in zip(started, started[1:])]
    assert len(gaps) == 1
    assert all(g >= 2.0 for g in gaps)


def test_retry_backoff_still_applies_when_rate_limit_is_short(make_image):
    clock = FakeClock()
    content = make_image()
    replies = [_response(status=503), _response(status=503), _ok_response(content)]
    started = []

    def http_client(url, headers=None, timeout=None, stream=False):
        started.append(clock.now)
        return replies.pop(0)

    downloader = _downloader(clock, http_client, min_delay=0.0, max_delay=0.1)
    assert downloader.download("http://x.com/a.jpg", DownloadOptions(retries=2)).success

    gaps = [b - a for a, b in zip(started, started[1:])]
    assert gaps[0] >= 1.0 - 1e-9
    assert gaps[1] >= 2.0 - 1e-9
