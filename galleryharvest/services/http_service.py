from typing import Callable, Dict, Optional, Tuple

import requests

from galleryharvest.domain.http_response import HttpResponse
from galleryharvest.exceptions import HttpFetchError

HTML_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8"
STREAM_CHUNK_BYTES = 64 * 1024


def _header_fields(resp) -> Tuple[Optional[str], Optional[int]]:
    ct = None
    content_length = None
    if hasattr(resp, 'headers'):
        ct = resp.headers.get('Content-Type')
        raw_length = resp.headers.get('Content-Length')
        if raw_length:
            try:
                content_length = int(raw_length)
            except (TypeError, ValueError):
                content_length = None
    return ct, content_length


class HttpService:
    """
    HTTP client wrapper for fetching gallery pages and image bytes.

    Requires http_client callable for dependency injection. This enables easy
    testing without patching and allows swapping HTTP libraries.
    """

    def __init__(self, user_agent: str, http_client: Callable, timeout: float = 15):
        self.user_agent = user_agent
        self.timeout = timeout
        self.http_client = http_client

    def _merge_headers(self, headers: Optional[Dict[str, str]]) -> Dict[str, str]:
        merged = {"User-Agent": self.user_agent}
        if headers:
            merged.update(headers)
        return merged

    def fetch(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        as_text: bool = True,
    ) -> HttpResponse:
        """Fetch URL and return status code, body, Content-Type and raw bytes.

        With `as_text=False` the body is not decoded.
        """
        try:
            resp = self.http_client(url, headers=self._merge_headers(headers), timeout=timeout or self.timeout)
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(url, e) from e

        ct, content_length = _header_fields(resp)
        return HttpResponse(
            resp.status_code,
            resp.text if as_text else "",
            ct,
            resp.content,
            content_length,
            getattr(resp, 'reason', '') or '',
        )

    def fetch_stream(
        self,
        url: str,
        max_bytes: int,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> HttpResponse:
        """Fetch a binary body in chunks, reading at most `max_bytes + 1` bytes.

        Non-2xx responses and responses whose Content-Length is over the
        limit come back without their body. A body that runs past the limit
        is abandoned and flagged `truncated`. The response is always closed.
        """
        try:
            resp = self.http_client(
                url, headers=self._merge_headers(headers), timeout=timeout or self.timeout, stream=True,
            )
        except requests.exceptions.RequestException as e:
            raise HttpFetchError(url, e) from e

        try:
            ct, content_length = _header_fields(resp)
            reason = getattr(resp, 'reason', '') or ''
            if not 200 <= int(resp.status_code) < 300:
                return HttpResponse(resp.status_code, "", ct, b"", content_length, reason)
            if content_length is not None and content_length > max_bytes:
                return HttpResponse(resp.status_code, "", ct, b"", content_length, reason, truncated=True)

            chunks = []
            received = 0
            try:
                for chunk in resp.iter_content(chunk_size=STREAM_CHUNK_BYTES):
                    if not chunk:
                        continue
                    received += len(chunk)
                    if received > max_bytes:
                        return HttpResponse(resp.status_code, "", ct, b"", content_length, reason, truncated=True)
                    chunks.append(chunk)
            except requests.exceptions.RequestException as e:
                raise HttpFetchError(url, e) from e
            return HttpResponse(resp.status_code, "", ct, b"".join(chunks), content_length, reason)
        finally:
            resp.close()

    def fetch_html(self, url: str) -> str:
        """Fetch a page with browser-like headers; non-2xx responses raise HttpFetchError."""
        response = self.fetch(url, headers={
            "Accept": HTML_ACCEPT,
            "Accept-Language": "en-US,en;q=0.5",
            "Connection": "keep-alive",
        })
        if not response.ok:
            raise HttpFetchError(url, RuntimeError(f"status {response.status_code}"))
        return response.text
