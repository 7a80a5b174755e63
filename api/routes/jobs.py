"""
Job catalog and execution endpoints
"""

from typing import List
from fastapi import APIRouter, Depends, Request
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.jobs import Job, JobCreate, JobUpdate, JobRun
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/jobs", tags=["Jobs"])


@router.get("", response_model=List[Job])
async def list_jobs(manager: PipelineManager = Depends(get_manager)):
    return manager.get_all_jobs()


@router.post("", response_model=Job, status_code=201)
async def create_job(data: JobCreate, manager: PipelineManager = Depends(get_manager)):
    return manager.create_job(data)


@router.get("/{job_id}", response_model=Job)
async def get_job(job_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.get_job(job_id)


@router.patch("/{job_id}", response_model=Job)
async def update_job(job_id: str, update: JobUpdate, manager: PipelineManager = Depends(get_manager)):
    return manager.update_job(job_id, update)


@router.delete("/{job_id}", status_code=204)
async def delete_job(job_id: str, manager: PipelineManager = Depends(get_manager)):
    manager.delete_job(job_id)


@router.post("/{job_id}/execute", response_model=JobRun)
async def execute_job(job_id: str, request: Request, manager: PipelineManager = Depends(get_manager)):
    """
    Run the job now and wait for it to finish.

    409 if the job is already running.
    """
    logger.info(f"[{request.state.request_id}] manual execution of {job_id}")
    return await manager.execute_job(job_id)


@router.post("/{job_id}/pause", response_model=Job)
async def pause_job(job_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.pause_job(job_id)


@router.post("/{job_id}/resume", response_model=Job)
async def resume_job(job_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.resume_job(job_id)


@router.get("/{job_id}/runs", response_model=List[JobRun])
async def get_job_runs(job_id: str, manager: PipelineManager = Depends(get_manager)):
    return manager.get_job_runs(job_id)
