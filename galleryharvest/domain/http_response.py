from typing import NamedTuple, Optional


class HttpResponse(NamedTuple):
    """Response from HTTP fetch operation.

    `truncated` is set by streamed fetches whose body was not read in full
    because it exceeded the byte limit.
    """
    status_code: int
    text: str
    content_type: Optional[str] = None
    content: bytes = b""
    content_length: Optional[int] = None
    reason: str = ""
    truncated: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= int(self.status_code) < 300
