from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class StagedImage:
    id: str
    job_id: str
    source_url: str
    file_path: str
    width: int
    height: int
    size_bytes: int
    hash: str
    content_type: str
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "job_id": self.job_id,
            "source_url": self.source_url,
            "width": self.width,
            "height": self.height,
            "size_bytes": self.size_bytes,
            "hash": self.hash,
            "content_type": self.content_type,
            "created_at": self.created_at.isoformat(),
        }
