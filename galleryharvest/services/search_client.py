import logging
from typing import Callable, List

import requests

from galleryharvest.domain import WebSearchResult
from galleryharvest.exceptions import HttpFetchError, SearchApiError

logger = logging.getLogger(__name__)

BRAVE_WEB_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"


class BraveSearchClient:
    """Brave web search API client.

    The API key is passed per call so one client can be shared by every job;
    credentials are the only state jobs have in common.
    """

    def __init__(self, http_client: Callable = requests.get, timeout: float = 10, endpoint: str = BRAVE_WEB_SEARCH_URL):
        self.http_client = http_client
        self.timeout = timeout
        self.endpoint = endpoint

    def search(self, query: str, api_key: str, count: int = 10, offset: int = 0) -> List[WebSearchResult]:
        params = {"q": query, "count": str(count), "offset": str(offset)}
        headers = {"Accept": "application/json", "X-Subscription-Token": api_key}
        try:
            resp = self.http_client(self.endpoint, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(self.endpoint, e) from e

        if resp.status_code < 200 or resp.status_code >= 300:
            raise SearchApiError(resp.status_code, resp.text)

        data = resp.json() or {}
        items = (data.get("web") or {}).get("results") or []
        results = []
        for item in items:
            url = item.get("url")
            if not url:
                continue
            results.append(WebSearchResult(url=url, title=item.get("title") or "", description=item.get("description") or ""))
        logger.debug("Search %r returned %s results", query, len(results))
        return results
