import uuid
from typing import Optional

from sqlalchemy.orm import Session

from galleryharvest.db.models import Dataset as DBDataset
from galleryharvest.domain import Dataset


class DatasetsRepository:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    def get_session(self) -> Session:
        return self.session_factory()

    def create_dataset(self, name: str, workspace_id: Optional[str] = None, dataset_id: Optional[str] = None) -> Dataset:
        with self.get_session() as session:
            row = DBDataset(id=dataset_id or str(uuid.uuid4()), name=name, workspace_id=workspace_id)
            session.add(row)
            session.commit()
            return Dataset(row.id, row.name, row.workspace_id)

    def get_dataset(self, dataset_id: str) -> Optional[Dataset]:
        with self.get_session() as session:
            row = session.get(DBDataset, dataset_id)
            if not row:
                return None
            return Dataset(row.id, row.name, row.workspace_id)
