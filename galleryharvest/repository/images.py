import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from galleryharvest.db.models import Image as DBImage


class ImagesRepository:
    """Permanent image records. Only the subset used by staged-image import."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def create_image(
        self,
        *,
        dataset_id: str,
        storage_key: str,
        workspace_id: Optional[str] = None,
        source_type: str = "crawl",
        source_url: Optional[str] = None,
        original_filename: Optional[str] = None,
        width: Optional[int] = None,
        height: Optional[int] = None,
        mime: Optional[str] = None,
        size_bytes: Optional[int] = None,
        hash: Optional[str] = None,
        aspect_ratio: Optional[str] = None,
        flagged_duplicate: bool = False,
    ) -> str:
        with self.get_session() as session:
            row = DBImage(
                id=str(uuid.uuid4()),
                dataset_id=dataset_id,
                workspace_id=workspace_id,
                source_type=source_type,
                source_url=source_url,
                storage_key=storage_key,
                original_filename=original_filename,
                width=width,
                height=height,
                mime=mime,
                size_bytes=size_bytes,
                hash=hash,
                aspect_ratio=aspect_ratio,
                flagged_duplicate=flagged_duplicate,
            )
            session.add(row)
            session.commit()
            return row.id

    def list_image_ids(self, dataset_id: str) -> List[str]:
        with self.get_session() as session:
            q = select(DBImage.id).where(DBImage.dataset_id == dataset_id)
            return list(session.execute(q).scalars().all())
