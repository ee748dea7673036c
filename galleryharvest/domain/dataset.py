from typing import Optional


class Dataset:
    def __init__(self, dataset_id: str, name: str, workspace_id: Optional[str] = None):
        self.dataset_id = dataset_id
        self.name = name
        self.workspace_id = workspace_id

    def __repr__(self):
        return f"<Dataset id={self.dataset_id} name={self.name}>"
