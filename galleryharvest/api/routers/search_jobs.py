import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from galleryharvest.domain import JobOptions
from galleryharvest.exceptions import (
    DatasetNotFoundError,
    HttpFetchError,
    JobNotFoundError,
    SearchApiError,
    SearchApiKeyMissingError,
)

logger = logging.getLogger(__name__)


class StartJobRequest(BaseModel):
    subject_name: str
    dataset_id: str
    max_images: int = 500
    min_resolution: int = 300
    crawl_depth: int = 3
    max_sites: Optional[int] = None


class DiscoverRequest(BaseModel):
    subject_name: str
    max_sites: Optional[int] = None


def create_search_jobs_router(orchestrator, default_max_sites: int = 5):
    router = APIRouter(prefix="/search-jobs", tags=["Search jobs"])

    def _get_job_or_404(job_id: str):
        try:
            return orchestrator.get_job(job_id)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="search job not found")

    @router.post("", status_code=202)
    def start_job(req: StartJobRequest):
        try:
            options = JobOptions(
                max_images=req.max_images,
                min_resolution=req.min_resolution,
                crawl_depth=req.crawl_depth,
                max_sites=req.max_sites or default_max_sites,
            )
            job = orchestrator.start_job(req.subject_name, req.dataset_id, options)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except DatasetNotFoundError:
            raise HTTPException(status_code=404, detail="dataset not found")
        except SearchApiKeyMissingError:
            raise HTTPException(status_code=400, detail="search API key not configured")
        except Exception:
            logger.exception("Could not start search job for %r", req.subject_name)
            raise HTTPException(status_code=500, detail="could not start search job")
        return {"job_id": job.id, "status": job.status.value}

    @router.post("/discover")
    def discover(req: DiscoverRequest):
        try:
            sites = orchestrator.discover_sites(req.subject_name, max_sites=req.max_sites or default_max_sites)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except SearchApiKeyMissingError:
            raise HTTPException(status_code=400, detail="search API key not configured")
        except (SearchApiError, HttpFetchError):
            logger.exception("Site discovery failed for %r", req.subject_name)
            raise HTTPException(status_code=502, detail="web search failed")
        return {"sites": [s.to_dict() for s in sites]}

    @router.get("")
    def list_jobs(dataset_id: Optional[str] = None):
        try:
            jobs = orchestrator.list_jobs(dataset_id=dataset_id)
        except Exception:
            logger.exception("Could not list search jobs")
            raise HTTPException(status_code=500, detail="could not list search jobs")
        return [j.to_dict() for j in jobs]

    @router.get("/{job_id}")
    def get_job(job_id: str):
        return _get_job_or_404(job_id).to_dict()

    @router.post("/{job_id}/cancel")
    def cancel_job(job_id: str):
        try:
            ok = orchestrator.cancel_job(job_id)
        except JobNotFoundError:
            raise HTTPException(status_code=404, detail="search job not found")
        if not ok:
            raise HTTPException(status_code=409, detail="search job already finished")
        return {"status": "cancelling", "job_id": job_id}

    return router
