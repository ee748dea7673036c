from typing import NamedTuple


class WebSearchResult(NamedTuple):
    """One organic result returned by the web search API."""
    url: str
    title: str = ""
    description: str = ""
