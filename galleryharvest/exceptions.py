"""Custom exceptions for GalleryHarvest services."""


class HttpFetchError(Exception):
    """Raised when an HTTP fetch fails due to network/transport errors."""

    def __init__(self, url: str, original: Exception):
        self.url = url
        self.original = original
        super().__init__(f"HTTP fetch failed for {url}: {original}")


class SearchApiError(Exception):
    """Raised when the web search API rejects a query."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Web search failed: {status_code} - {body}")


class SearchApiKeyMissingError(Exception):
    """Raised when a job is requested but no search API key is configured."""

    def __init__(self):
        super().__init__("Search API key not configured. Set BRAVE_API_KEY.")


class DatasetNotFoundError(Exception):
    def __init__(self, dataset_id: str):
        self.dataset_id = dataset_id
        super().__init__(f"Dataset not found: {dataset_id}")


class JobNotFoundError(Exception):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Crawl job not found: {job_id}")
