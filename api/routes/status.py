"""
System status endpoints
"""

from typing import List
from fastapi import APIRouter, Depends
from api.dependencies import get_manager
from etl.pipeline import PipelineManager
from schemas.jobs import SystemStatus, ExcludedJob, ScheduledJob

router = APIRouter(prefix="/status", tags=["Status"])


@router.get("", response_model=SystemStatus)
async def get_status(manager: PipelineManager = Depends(get_manager)):
    """Catalog sizes, running / scheduled / excluded job counts and last failure time"""
    return manager.get_system_status()


@router.get("/excluded-jobs", response_model=List[ExcludedJob])
async def get_excluded_jobs(manager: PipelineManager = Depends(get_manager)):
    return manager.get_excluded_jobs()


@router.get("/scheduled-jobs", response_model=List[ScheduledJob])
async def get_scheduled_jobs(manager: PipelineManager = Depends(get_manager)):
    return manager.scheduler.get_all_scheduled_jobs()
