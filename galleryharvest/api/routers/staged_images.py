import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from galleryharvest.exceptions import DatasetNotFoundError, JobNotFoundError

logger = logging.getLogger(__name__)


class ImportRequest(BaseModel):
    dataset_id: str
    image_ids: Optional[List[str]] = None


class DiscardRequest(BaseModel):
    image_ids: Optional[List[str]] = None


def create_staged_images_router(orchestrator):
    router = APIRouter(prefix="/search-jobs", tags=["Staged images"])

    @router.get("/{job_id}/staged-images")
    def list_staged(job_id: str):
        images = orchestrator.list_staged_images(job_id)
        return {"images": [s.to_dict() for s in images]}

    @router.get("/{job_id}/staged-images/{image_id}")
    def get_staged(job_id: str, image_id: str):
        try:
            found = orchestrator.read_staged_image(job_id, image_id)
        except OSError:
            logger.exception("Could not read staged image %s/%s", job_id, image_id)
            raise HTTPException(status_code=500, detail="could not read staged image")
        if found is None:
            raise HTTPException(status_code=404, detail="staged image not found")
        staged, content = found
        return Response(content=content, media_type=staged.content_type)

    @router.post("/{job_id}/import")
    def import_staged(job_id: str, req: ImportRequest):
        if not req.dataset_id:
            raise HTTPException(status_code=400, detail="dataset_id is required")
        try:
            result = orchestrator.import_staged_images(job_id, req.dataset_id, req.image_ids)
        except DatasetNotFoundError:
            raise HTTPException(status_code=404, detail="dataset not found")
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="search job not found")
        except Exception:
            logger.exception("Import failed for job %s", job_id)
            raise HTTPException(status_code=500, detail="could not import staged images")
        return {"imported": result.imported, "image_ids": result.image_ids, "failed": result.failed}

    @router.post("/{job_id}/discard")
    def discard_staged(job_id: str, req: Optional[DiscardRequest] = None):
        image_ids = req.image_ids if req is not None else None
        try:
            discarded = orchestrator.discard_staged_images(job_id, image_ids)
        except Exception:
            logger.exception("Discard failed for job %s", job_id)
            raise HTTPException(status_code=500, detail="could not discard staged images")
        return {"status": "discarded", "count": discarded}

    return router
