from unittest.mock import MagicMock

import pytest
import requests

from galleryharvest.exceptions import HttpFetchError, SearchApiError
from galleryharvest.services.search_client import BRAVE_WEB_SEARCH_URL, BraveSearchClient


def _response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.json.return_value = payload
    return resp


def test_search_returns_results_with_urls():
    http_client = MagicMock(return_value=_response(payload={"web": {"results": [
        {"url": "http://a.com", "title": "A", "description": "first"},
        {"title": "no url"},
        {"url": "http://b.com"},
    ]}}))
    client = BraveSearchClient(http_client=http_client)

    results = client.search("jane gallery", "secret", count=15, offset=1)

    assert [(r.url, r.title, r.description) for r in results] == [
        ("http://a.com", "A", "first"),
        ("http://b.com", "", ""),
    ]
    args, kwargs = http_client.call_args
    assert args == (BRAVE_WEB_SEARCH_URL,)
    assert kwargs["params"] == {"q": "jane gallery", "count": "15", "offset": "1"}
    assert kwargs["headers"]["X-Subscription-Token"] == "secret"


def test_search_without_web_section_is_empty():
    client = BraveSearchClient(http_client=MagicMock(return_value=_response(payload={})))
    assert client.search("q", "k") == []


def test_non_2xx_raises_search_error():
    client = BraveSearchClient(http_client=MagicMock(return_value=_response(status=401, text="unauthorized")))
    with pytest.raises(SearchApiError) as exc:
        client.search("q", "k")
    assert exc.value.status_code == 401
    assert exc.value.body == "unauthorized"


def test_transport_error_is_wrapped():
    client = BraveSearchClient(http_client=MagicMock(side_effect=requests.exceptions.Timeout("slow")))
    with pytest.raises(HttpFetchError):
        client.search("q", "k")
