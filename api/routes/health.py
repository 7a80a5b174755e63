"""
Health check endpoint with scheduler and job status
"""

from fastapi import APIRouter, Depends
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.api import HealthCheckResponse, JobHealthInfo
from schemas.enums import JobStatus
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(manager: PipelineManager = Depends(get_manager)):
    """
    Health check endpoint.

    Returns:
    - Scheduler state
    - Latest status of every active job
    - healthy / degraded / unhealthy based on failed jobs
    """
    jobs = manager.get_all_jobs()

    job_infos = [
        JobHealthInfo(
            job_id=job.id,
            name=job.name,
            status=job.status.value,
            last_run_at=job.last_run_at,
            next_run_at=job.next_run_at
        )
        for job in jobs
    ]

    successful_jobs = sum(1 for j in jobs if j.status in (JobStatus.SUCCESS, JobStatus.COMPLETED))
    failed_jobs = sum(1 for j in jobs if j.status == JobStatus.FAILED)

    if failed_jobs:
        logger.warning(f"Health check: {failed_jobs}/{len(jobs)} jobs failed on their last run")

    # Status is computed by the HealthCheckResponse validator
    return HealthCheckResponse(
        scheduler_running=manager.scheduler.is_running,
        jobs=job_infos,
        total_jobs=len(jobs),
        successful_jobs=successful_jobs,
        failed_jobs=failed_jobs
    )
