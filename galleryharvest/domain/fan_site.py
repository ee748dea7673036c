from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class GalleryType(str, Enum):
    COPPERMINE = "coppermine"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FanSite:
    """A candidate gallery site produced by site detection.

    One per distinct domain per job. `category_url` is the resolved entry
    point into the gallery and is only set for the known engine.
    """

    url: str
    domain: str
    gallery_type: GalleryType
    confidence: float
    category_url: Optional[str] = None

    @property
    def is_known_engine(self) -> bool:
        return self.gallery_type == GalleryType.COPPERMINE

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "domain": self.domain,
            "type": self.gallery_type.value,
            "confidence": self.confidence,
            "category_url": self.category_url,
        }
