from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GalleryImage:
    full_size_url: str
    page_url: str
    title: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
