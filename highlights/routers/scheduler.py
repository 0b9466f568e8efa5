"""
Scheduler API Router

Endpoints for monitoring and manually triggering background jobs.
Protected by the X-Admin-API-Key header.
"""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..config import get_settings
from ..core.logging import get_logger
from ..core.security import verify_admin_access
from ..models.results import JobRun
from ..services.scheduler import SchedulerService, get_scheduler_service

logger = get_logger(__name__)
settings = get_settings()

router = APIRouter(prefix="/scheduler", tags=["scheduler"])
limiter = Limiter(key_func=get_remote_address)


@router.get("/status")
async def get_scheduler_status(
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    Get current scheduler status and job information.

    Returns:
        - Whether scheduler is running
        - List of jobs with cron, enabled flag, next and last run
    """
    return service.get_job_status()


@router.get("/history", response_model=List[JobRun])
async def get_job_history(
    job: Optional[str] = Query(None, description="Filter by job name"),
    limit: int = Query(20, ge=1, le=100),
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Recent job runs, most recent first."""
    return await service.get_history(job, limit)


@router.post("/trigger/{job_name}", response_model=JobRun)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def trigger_job(
    request: Request,
    job_name: str,
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    """
    Manually run a job now.

    The run is recorded in the history like a scheduled one; handler
    errors show up as status=failure rather than an HTTP error.
    """
    logger.info("manual_trigger", job=job_name, admin=admin["uid"])
    return await service.run_job(job_name, trigger="manual")


@router.post("/jobs/{job_name}/enable")
async def enable_job(
    job_name: str,
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    definition = service.enable_job(job_name)
    return {"success": True, "job": definition.name, "enabled": definition.enabled}


@router.post("/jobs/{job_name}/disable")
async def disable_job(
    job_name: str,
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    definition = service.disable_job(job_name)
    return {"success": True, "job": definition.name, "enabled": definition.enabled}


@router.post("/start")
async def start_scheduler(
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Start the background scheduler."""
    service.start()
    return {
        "success": True,
        "message": "Scheduler started",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/stop")
async def stop_scheduler(
    admin: dict = Depends(verify_admin_access),
    service: SchedulerService = Depends(get_scheduler_service),
):
    """Stop the background scheduler."""
    service.stop()
    return {
        "success": True,
        "message": "Scheduler stopped",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
