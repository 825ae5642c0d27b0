"""
API routes for lead scraping runs
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from ..scraping.errors import ConfigurationError
from ..scraping.manager import ScrapingManager
from ..scraping.models import ScrapingConfiguration, ScrapingJob, ScrapingStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scraping", tags=["scraping"])


def get_scraping_manager(request: Request) -> ScrapingManager:
    """Dependency to get the application's ScrapingManager"""
    manager = getattr(request.app.state, "scraping_manager", None)
    if manager is None:
        raise HTTPException(status_code=503, detail="Scraping system not initialized")
    return manager


def get_current_user_id(x_user_id: Optional[int] = Header(None)) -> Optional[int]:
    """Caller identity forwarded by the gateway"""
    return x_user_id


def _get_owned_job(job_id: str, user_id: Optional[int], manager: ScrapingManager) -> ScrapingJob:
    job = manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Run not found")
    if user_id is not None and job.user_id is not None and job.user_id != user_id:
        raise HTTPException(status_code=403, detail="Access denied")
    return job


@router.post("/runs", response_model=ScrapingJob, status_code=202)
async def start_run(
    config: ScrapingConfiguration,
    config_id: Optional[int] = None,
    user_id: Optional[int] = Depends(get_current_user_id),
    scraping_manager: ScrapingManager = Depends(get_scraping_manager)
):
    """
    Start a scraping run in the background
    """
    try:
        return scraping_manager.start_run(config, user_id=user_id, config_id=config_id)

    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to start scraping run: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to start run: {str(e)}")


@router.get("/runs", response_model=List[ScrapingJob])
async def list_runs(
    status: Optional[ScrapingStatus] = None,
    user_id: Optional[int] = Depends(get_current_user_id),
    scraping_manager: ScrapingManager = Depends(get_scraping_manager)
):
    """
    List runs of the caller, newest first
    """
    jobs = scraping_manager.list_jobs(user_id=user_id)
    if status:
        jobs = [job for job in jobs if job.status == status]
    return jobs


@router.get("/runs/{job_id}", response_model=ScrapingJob)
async def get_run(
    job_id: str,
    user_id: Optional[int] = Depends(get_current_user_id),
    scraping_manager: ScrapingManager = Depends(get_scraping_manager)
):
    """
    Get details of one run
    """
    return _get_owned_job(job_id, user_id, scraping_manager)


@router.post("/runs/{job_id}/cancel")
async def cancel_run(
    job_id: str,
    user_id: Optional[int] = Depends(get_current_user_id),
    scraping_manager: ScrapingManager = Depends(get_scraping_manager)
):
    """
    Stop issuing new work for a running job
    """
    _get_owned_job(job_id, user_id, scraping_manager)

    if not scraping_manager.cancel_job(job_id):
        raise HTTPException(status_code=409, detail="Run is not in progress and cannot be cancelled")

    return {"message": "Cancellation requested", "job_id": job_id}


@router.get("/sources")
async def get_available_sources(
    scraping_manager: ScrapingManager = Depends(get_scraping_manager)
):
    """
    List search sources and whether their credentials are configured
    """
    return {"sources": scraping_manager.describe_sources()}


@router.get("/stats")
async def get_scraping_stats(
    scraping_manager: ScrapingManager = Depends(get_scraping_manager)
):
    """
    Pipeline and job statistics
    """
    try:
        return scraping_manager.get_stats()
    except Exception as e:
        logger.error(f"Failed to compute scraping stats: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get stats: {str(e)}")
